"""
Contact reveal.

Asks Apollo for one person's email and phone. Email comes back at once;
phone numbers may be delivered later to the webhook, which parks them in
the RevealStore for an hour so the UI can poll for them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.common.config import Config
from src.common.error_handling import SearchValidationError
from src.common.repositories.reveal_store import RevealStore
from src.prospecting.normalizer import usable_email
from src.providers.apollo import ApolloClient

from .base import run_with_timeout

logger = logging.getLogger(__name__)

PHONE_AVAILABLE = "available"
PHONE_PENDING = "pending_webhook"
PHONE_NOT_AVAILABLE = "not_available"

PHONE_MESSAGES = {
    PHONE_NOT_AVAILABLE: "Phone number not available in Apollo database",
    PHONE_PENDING: "Phone number will be available in 2-5 minutes. Please check back.",
    PHONE_AVAILABLE: "Contact information revealed",
}


def pick_phone(phone_numbers: Any) -> Optional[str]:
    """Mobile first, then work, then whatever comes first."""
    if not isinstance(phone_numbers, list) or not phone_numbers:
        return None
    numbers: List[Dict[str, Any]] = [p for p in phone_numbers if isinstance(p, dict)]
    if not numbers:
        return None
    primary = (
        next((p for p in numbers if p.get("type") == "mobile"), None)
        or next((p for p in numbers if p.get("type") == "work"), None)
        or numbers[0]
    )
    return primary.get("sanitized_number") or primary.get("raw_number") or None


def webhook_url() -> str:
    return f"{Config.APP_URL.rstrip('/')}/api/apollo-webhook"


class ContactReveal:
    """reveal / ingest_webhook / lookup."""

    def __init__(self, apollo: ApolloClient, store: RevealStore):
        self.apollo = apollo
        self.store = store

    async def reveal(
        self,
        first_name: str,
        last_name: str,
        linkedin_url: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not first_name or not last_name:
            raise SearchValidationError("firstName and lastName are required")

        logger.info(f"Revealing contact {first_name} {last_name}")
        person = await run_with_timeout(
            self.apollo.match_person(
                first_name, last_name,
                linkedin_url=linkedin_url,
                organization=organization,
                webhook_url=webhook_url(),
            ),
            Config.APOLLO_REQUEST_TIMEOUT,
            "contact reveal",
        )
        if not person:
            return {"success": False, "message": "Contact not found in Apollo database"}

        phone_numbers = person.get("phone_numbers")
        phone = None
        if not phone_numbers:
            status = PHONE_NOT_AVAILABLE
        else:
            phone = pick_phone(phone_numbers)
            status = PHONE_AVAILABLE if phone else PHONE_PENDING

        email = usable_email(person.get("email"))
        logger.info(
            f"Revealed {first_name} {last_name}: email={bool(email)} phone_status={status}"
        )
        return {
            "success": True,
            "email": email,
            "phone": phone,
            "phoneStatus": status,
            "linkedin_url": person.get("linkedin_url") or None,
            "message": PHONE_MESSAGES[status],
        }

    async def ingest_webhook(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Park the person delivered by Apollo under its name fingerprint."""
        person = body.get("person") if isinstance(body, dict) else None
        if isinstance(person, dict):
            organization = (person.get("organization") or {}).get("name")
            phone = pick_phone(person.get("phone_numbers"))
            await self.store.put(
                person.get("first_name") or "",
                person.get("last_name") or "",
                organization,
                {
                    "phone": phone,
                    "cached_at": datetime.now(timezone.utc).isoformat(),
                    "person": {
                        "first_name": person.get("first_name"),
                        "last_name": person.get("last_name"),
                        "email": usable_email(person.get("email")),
                        "phone": phone,
                        "organization": organization,
                    },
                },
            )
            logger.info(f"Webhook delivered {person.get('first_name')} {person.get('last_name')} (phone={bool(phone)})")
        return {"success": True, "message": "Webhook processed successfully"}

    async def lookup(self, first_name: str, last_name: str, organization: Optional[str] = None) -> Dict[str, Any]:
        if not first_name or not last_name:
            raise SearchValidationError("first_name and last_name are required")
        entry = await self.store.get(first_name, last_name, organization)
        if entry:
            return {"found": True, **entry}
        return {"found": False, "message": "Phone number not yet received from Apollo webhook"}
