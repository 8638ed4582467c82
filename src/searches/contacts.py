"""
Contact search.

People at one company from Apollo, filtered to the requested roles by the
relevance filter, ranked and given a personalised opening line.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from src.common.config import Config
from src.common.logger import get_logger
from src.common.repositories.cache_store import CacheStoreInterface, build_cache_key
from src.common.repositories.search_history_repository import SearchHistoryRepositoryInterface
from src.prospecting.models import Contact, ContactSearchRequest
from src.prospecting.normalizer import normalize_contact
from src.prospecting.pitch import PitchWriter
from src.prospecting.relevance import RelevanceFilter
from src.providers.apollo import MAX_PER_PAGE, ApolloClient, PeopleSearchRequest, extract_domain

from .base import BaseSearch, SearchOutcome, run_with_timeout

logger = logging.getLogger(__name__)


def contacts_cache_key(
    company: str,
    position: str = "",
    sector: str = "",
    roles: Sequence[str] = (),
    custom_role: str = "",
    website: str = "",
    zone: str = "",
    results: int = 10,
) -> str:
    return build_cache_key(
        f"contacts-{company}",
        "search",
        [
            f"company-{company}",
            f"position-{position or 'all'}",
            f"sector-{sector or 'all'}",
            f"roles-{','.join(sorted(roles)) or 'default'}",
            f"customRole-{custom_role or 'none'}",
            f"website-{website or 'none'}",
            f"zone-{zone or 'none'}",
            f"results-{results}",
        ],
    )


def request_cache_key(request: ContactSearchRequest) -> str:
    return contacts_cache_key(
        request.nom_entreprise,
        request.poste_recherche,
        request.secteur_activite,
        request.contact_roles,
        request.custom_role,
        request.site_web_entreprise,
        request.zone(),
        request.nombre_resultats,
    )


def belongs_to_company(person: Dict[str, Any], company: str, website: str = "") -> bool:
    """Person's organization matches the requested company by name or domain."""
    organization = person.get("organization") if isinstance(person.get("organization"), dict) else {}
    org_name = str(organization.get("name") or "").lower()
    if not org_name:
        return True
    requested = company.lower()
    if requested in org_name or org_name in requested:
        return True
    org_domain = organization.get("primary_domain") or organization.get("website_url") or ""
    return bool(website and org_domain and extract_domain(org_domain) == extract_domain(website))


def rank_contacts(contacts: List[Contact], limit: int) -> List[Contact]:
    ranked = sorted(contacts, key=lambda c: (c.relevance_score, len(c.matched_roles)), reverse=True)
    return ranked[:limit]


class ContactSearch(BaseSearch):
    """searchType "contacts"."""

    search_type = "contacts"

    def __init__(
        self,
        apollo: ApolloClient,
        cache: CacheStoreInterface,
        history: Optional[SearchHistoryRepositoryInterface] = None,
        relevance: Optional[RelevanceFilter] = None,
        pitch_writer: Optional[PitchWriter] = None,
    ):
        super().__init__(cache, history)
        self.apollo = apollo
        self.relevance = relevance or RelevanceFilter()
        self.pitch_writer = pitch_writer or PitchWriter()

    async def lookup(self, **criteria) -> Optional[Dict[str, Any]]:
        """Cached result for contacts_cache_key(**criteria), or None."""
        return await self.cached_payload(contacts_cache_key(**criteria))

    async def search(self, request: ContactSearchRequest) -> SearchOutcome:
        log = get_logger(__name__, search_id=uuid.uuid4().hex, stage=self.search_type)
        key = request_cache_key(request)
        cached = await self.cached_payload(key)
        if cached is not None:
            return SearchOutcome(success=True, payload=cached, cached=True)

        roles = request.requested_roles()
        if request.poste_recherche and request.poste_recherche not in roles:
            roles.append(request.poste_recherche)

        people = await run_with_timeout(
            self.apollo.search_people(PeopleSearchRequest(
                company_name=request.nom_entreprise,
                website=request.site_web_entreprise or None,
                roles=roles,
                location=request.zone() or None,
                limit=MAX_PER_PAGE,
            )),
            Config.CONTACT_TIMEOUT,
            "contact search",
        )

        candidates: List[Contact] = []
        for person in people:
            if not isinstance(person, dict):
                continue
            if not belongs_to_company(person, request.nom_entreprise, request.site_web_entreprise):
                org = (person.get("organization") or {}).get("name")
                log.info(f"Dropped {person.get('first_name')} {person.get('last_name')}: works at {org}")
                continue
            contact = normalize_contact(person, company=request.nom_entreprise)
            if contact is None:
                continue
            if request.secteur_activite and not contact.sector:
                contact = contact.model_copy(update={"sector": request.secteur_activite})
            candidates.append(contact)

        relevant = self.relevance.filter_contacts(candidates, roles)
        contacts = rank_contacts(relevant, request.nombre_resultats)
        contacts = await self.pitch_writer.annotate(contacts, roles)
        log.info(f"{len(contacts)} contacts kept from {len(people)} Apollo people ({len(candidates)} normalized) in {log.elapsed()}s")

        sources: List[str] = []
        for contact in contacts:
            sources.extend(url for url in contact.sources if url not in sources)

        payload: Dict[str, Any] = {
            "searchType": self.search_type,
            "contacts": [c.to_wire() for c in contacts],
            "totalFound": len(contacts),
            "cached": False,
            "sources": sources,
            "hasContacts": bool(contacts),
            "searchCriteria": {
                "entreprise": request.nom_entreprise,
                "posteRecherche": request.poste_recherche,
                "secteurActivite": request.secteur_activite,
                "contactRoles": request.contact_roles,
                "customRole": request.custom_role,
                "siteWebEntreprise": request.site_web_entreprise,
                "nombreResultats": request.nombre_resultats,
                "zoneGeographique": request.zone(),
            },
            "linkedinStats": {
                "totalContacts": len(contacts),
                "contactsWithLinkedIn": sum(1 for c in contacts if c.linkedin_url),
                "contactsWithVerifiedLinkedIn": sum(1 for c in contacts if c.linkedin_verified),
            },
            "roleStats": {
                "rolesRequested": roles,
                "contactsWithMatchingRoles": sum(1 for c in contacts if c.matched_roles),
                "roleDistribution": {
                    role: sum(1 for c in contacts if role in c.matched_roles) for role in roles
                },
            },
            "debug": {
                "peopleReturned": len(people),
                "contactsNormalized": len(candidates),
                "contactsRelevant": len(relevant),
                "relevanceThreshold": self.relevance.threshold,
                "pitchMode": self.pitch_writer.mode,
            },
        }

        await self.store_payload(key, payload, Config.CONTACT_CACHE_TTL)
        await self.record_history(
            product=f"contacts-{request.nom_entreprise}",
            location=request.zone() or "search",
            reference_urls=sources[:20],
            results_count=len(contacts),
            search_query=f"contacts: {request.nom_entreprise} ({', '.join(roles) or 'tous rôles'})",
        )
        return SearchOutcome(success=True, payload=payload)
