"""
Apollo.io API client.

Covers the three endpoints the prospecting flows need:
- mixed_people/search   people at a company, filtered by title/location
- organizations/search  resolve a company name/domain to an organization id
- people/match          enrich (reveal) one person's email and phone
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from src.common.config import Config
from src.common.error_handling import (
    ProviderConfigurationError,
    ProviderTransportError,
    SearchTimeoutError,
)
from src.common.rate_limiter import Provider, RateLimiter, RateLimitExceededError, get_rate_limiter

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 25

# Requested role -> title Apollo recognises in person_titles
STANDARD_TITLES: Dict[str, str] = {
    "acheteur commodité": "buyer",
    "acheteur projet": "project buyer",
    "directeur production/qualité": "production director",
    "directeur technique/r&d/innovation": "technical director",
    "direction générale": "ceo",
    "responsable achats/approvisionnement": "procurement manager",
    "responsable achat": "purchasing manager",
    "responsable achat métal": "buyer",
    "responsable achat ressort": "buyer",
    "responsable découpe": "manager",
}


def extract_domain(url: str) -> str:
    """'https://www.acme.fr/about' -> 'acme.fr'"""
    if not url:
        return ""
    parsed = urlparse(url if url.startswith("http") else f"https://{url}")
    host = parsed.hostname or url.split("/")[0]
    return host[4:] if host.startswith("www.") else host


def standard_titles(roles: List[str]) -> List[str]:
    """Map requested roles onto Apollo titles, adding common variations."""
    titles: List[str] = []
    for role in roles:
        title = STANDARD_TITLES.get(role.lower().strip())
        if title and title not in titles:
            titles.append(title)
    if "buyer" in titles:
        titles.extend(t for t in ("purchasing", "procurement") if t not in titles)
    if "ceo" in titles:
        titles.extend(t for t in ("managing director", "general manager") if t not in titles)
    return titles


@dataclass
class PeopleSearchRequest:
    """Parameters for a people search at one company."""

    company_name: str
    website: Optional[str] = None
    roles: List[str] = field(default_factory=list)
    location: Optional[str] = None
    limit: int = MAX_PER_PAGE

    def per_page(self) -> int:
        return max(1, min(self.limit or MAX_PER_PAGE, MAX_PER_PAGE))

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "page": 1,
            "per_page": self.per_page(),
            "q_organization_name": self.company_name,
        }
        if self.website:
            payload["organization_domains"] = [extract_domain(self.website)]
        titles = standard_titles(self.roles)
        if titles:
            payload["person_titles"] = titles
        if self.location:
            payload["person_locations"] = [self.location]
        return payload


class ApolloClient:
    """Async client for the Apollo REST API (X-Api-Key auth)."""

    name = "apollo"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.APOLLO_API_KEY
        self.base_url = (base_url or Config.APOLLO_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or Config.APOLLO_REQUEST_TIMEOUT
        self.rate_limiter = rate_limiter or get_rate_limiter(Provider.APOLLO)
        self._transport = transport

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderConfigurationError(
                "Configuration API manquante",
                details="APOLLO_API_KEY is not configured",
            )
        try:
            acquired = await self.rate_limiter.acquire_async()
        except RateLimitExceededError as e:
            raise ProviderTransportError(self.name, str(e), status=429)
        if not acquired:
            raise ProviderTransportError(self.name, "Apollo rate limit reached", status=429)

        headers = {
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
            "X-Api-Key": self.api_key,
        }
        logger.debug(f"Apollo POST {path}: {payload}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(f"{self.base_url}/{path}", json=payload, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException:
            raise SearchTimeoutError(f"apollo {path}", self.timeout_seconds)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Apollo API error {status} on {path}: {e.response.text[:300]}")
            raise ProviderTransportError(
                self.name,
                f"Erreur API Apollo: {status}",
                status=status,
                details=e.response.text[:500],
            )
        except httpx.HTTPError as e:
            raise ProviderTransportError(self.name, f"Erreur API Apollo: {e}")
        except ValueError as e:
            raise ProviderTransportError(self.name, f"Apollo returned a non-JSON body: {e}")

    async def search_organizations(self, company_name: str, website: Optional[str] = None) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {"page": 1, "per_page": 1, "q_organization_name": company_name}
        if website:
            payload["organization_domains"] = [extract_domain(website)]
        data = await self._post("organizations/search", payload)
        return data.get("organizations") or []

    async def search_people(self, request: PeopleSearchRequest) -> List[Dict[str, Any]]:
        """
        People at the requested company.

        A failed name search falls back to resolving the organization id
        first and searching people by id.
        """
        try:
            data = await self._post("mixed_people/search", request.to_payload())
        except ProviderTransportError as first_error:
            logger.warning(f"Apollo people search failed ({first_error}), retrying via organization id")
            organizations = await self.search_organizations(request.company_name, request.website)
            if not organizations or not organizations[0].get("id"):
                raise ProviderTransportError(self.name, "Aucune organisation trouvée avec ce nom")
            payload: Dict[str, Any] = {
                "page": 1,
                "per_page": request.per_page(),
                "organization_ids": [organizations[0]["id"]],
            }
            titles = standard_titles(request.roles)
            if titles:
                payload["person_titles"] = titles
            data = await self._post("mixed_people/search", payload)

        people = data.get("people")
        if not isinstance(people, list):
            return []
        logger.info(f"Apollo returned {len(people)} people for {request.company_name}")
        return people

    async def match_person(
        self,
        first_name: str,
        last_name: str,
        linkedin_url: Optional[str] = None,
        organization: Optional[str] = None,
        webhook_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Enrich one person; phone numbers may arrive later via webhook."""
        payload: Dict[str, Any] = {
            "first_name": first_name,
            "last_name": last_name,
            "reveal_personal_emails": True,
            "reveal_phone_number": True,
        }
        if webhook_url:
            payload["webhook_url"] = webhook_url
        if linkedin_url:
            payload["linkedin_url"] = linkedin_url
        if organization:
            payload["organization_name"] = organization
        data = await self._post("people/match", payload)
        return data.get("person")
