"""
Personalised opening lines for contacts.

Template mode needs no provider. LLM mode asks a chat provider for a
two-sentence message and falls back to the template when the call fails
or the time budget of the search is used up.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from src.common.config import Config
from src.prospecting.models import Contact
from src.prospecting.prompts import PITCH_SYSTEM_PROMPT, build_pitch_user_prompt
from src.providers.base import ChatProvider, CompletionOptions

logger = logging.getLogger(__name__)

INDUSTRY_VALUE_PROPS = {
    "manufacturing": "optimiser vos processus de production et votre chaîne d'approvisionnement",
    "automotive": "améliorer l'efficacité de votre chaîne de production automobile",
    "technology": "accélérer votre transformation digitale et innovation",
    "healthcare": "optimiser vos opérations tout en maintenant les standards de qualité",
}
DEFAULT_VALUE_PROP = "améliorer l'efficacité opérationnelle de votre entreprise"


def matching_role(title: str, requested_roles: Sequence[str]) -> Optional[str]:
    title_lower = title.lower()
    first_word = title_lower.split(" ")[0] if title_lower else ""
    for role in requested_roles:
        role_lower = role.lower()
        if role_lower in title_lower or (first_word and first_word in role_lower):
            return role
    return None


def template_pitch(contact: Contact, requested_roles: Sequence[str] = ()) -> str:
    organization = contact.organization or contact.company
    if requested_roles:
        role = matching_role(contact.position, requested_roles)
        if role:
            role_context = f"en tant que {role} chez {organization}"
        else:
            role_context = f"dans votre rôle de {contact.position} chez {organization}"
    else:
        role_context = f"en tant que {contact.position} chez {organization}"
    value_prop = INDUSTRY_VALUE_PROPS.get(contact.sector.lower(), DEFAULT_VALUE_PROP)
    return (
        f"Bonjour {contact.first_name}, j'aimerais échanger avec vous {role_context} "
        f"sur des solutions qui pourraient {value_prop}. Seriez-vous disponible pour un bref échange ?"
    )


class PitchWriter:
    """
    Adds custom_pitch to contacts, by template or by LLM.

    In LLM mode annotate() shares budget_seconds across all contacts. A call
    is cut off when the budget runs out, and every contact left after that
    gets the template pitch.
    """

    def __init__(
        self,
        provider: Optional[ChatProvider] = None,
        mode: Optional[str] = None,
        budget_seconds: Optional[float] = None,
    ):
        self.mode = (mode or Config.CONTACT_PITCH_MODE).lower()
        self.provider = provider
        self.budget_seconds = Config.PITCH_BUDGET_SECONDS if budget_seconds is None else budget_seconds

    @property
    def uses_llm(self) -> bool:
        return self.mode == "llm" and self.provider is not None

    @staticmethod
    def options() -> CompletionOptions:
        return CompletionOptions(
            model=Config.PITCH_MODEL,
            max_tokens=Config.PITCH_MAX_TOKENS,
            temperature=Config.PITCH_TEMPERATURE,
            timeout_seconds=Config.PITCH_TIMEOUT,
        )

    async def pitch(
        self,
        contact: Contact,
        requested_roles: Sequence[str] = (),
        timeout_seconds: Optional[float] = None,
    ) -> str:
        if not self.uses_llm:
            return template_pitch(contact, requested_roles)
        try:
            result = await asyncio.wait_for(
                self.provider.complete(
                    PITCH_SYSTEM_PROMPT,
                    build_pitch_user_prompt(
                        contact.first_name,
                        contact.position,
                        contact.organization or contact.company,
                        contact.sector,
                        contact.matched_roles,
                    ),
                    self.options(),
                ),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(f"LLM pitch for {contact.first_name} {contact.last_name} ran out of time, using template")
            return template_pitch(contact, requested_roles)
        except Exception as e:
            logger.warning(f"LLM pitch failed for {contact.first_name} {contact.last_name}, using template: {e}")
            return template_pitch(contact, requested_roles)
        return result.text.strip() or template_pitch(contact, requested_roles)

    async def annotate(self, contacts: Sequence[Contact], requested_roles: Sequence[str] = ()) -> List[Contact]:
        deadline = time.monotonic() + self.budget_seconds
        annotated: List[Contact] = []
        skipped = 0
        for contact in contacts:
            remaining = deadline - time.monotonic()
            if self.uses_llm and remaining <= 0:
                skipped += 1
                pitch = template_pitch(contact, requested_roles)
            else:
                pitch = await self.pitch(contact, requested_roles, timeout_seconds=remaining if self.uses_llm else None)
            annotated.append(contact.model_copy(update={"custom_pitch": pitch}))
        if skipped:
            logger.info(f"Pitch budget of {self.budget_seconds:g}s used up, {skipped} contacts got template pitches")
        return annotated
