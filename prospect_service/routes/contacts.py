"""
Contacts API Routes.

- POST /api/contacts          - People search at one company
- GET  /api/contacts          - Cached result for the same criteria
- POST /api/reveal-contact    - Reveal email/phone of one person
- POST /api/apollo-webhook    - Apollo delivers phone numbers here
- GET  /api/apollo-webhook    - Poll for a webhook-delivered phone number
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from src.common.error_handling import NoResultsError, SearchValidationError
from src.prospecting.models import ContactSearchRequest, RevealRequest
from src.searches import ContactReveal, ContactSearch

from ..dependencies import get_contact_reveal, get_contact_search
from ..errors import outcome_or_raise

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["contacts"])


@router.post("/contacts")
async def search_contacts(
    request: ContactSearchRequest,
    search: ContactSearch = Depends(get_contact_search),
) -> Dict[str, Any]:
    logger.info(f"Contact search: {request.nom_entreprise} roles={request.requested_roles()}")
    return await outcome_or_raise(
        search.search(request),
        "contact_search_error",
        "Erreur lors de la recherche contacts",
    )


@router.get("/contacts")
async def get_cached_contacts(
    company: Optional[str] = Query(None),
    position: str = Query(""),
    sector: str = Query(""),
    roles: str = Query("", description="Comma-separated role list"),
    customRole: str = Query(""),
    website: str = Query(""),
    zone: str = Query(""),
    results: int = Query(10, ge=1, le=25),
    search: ContactSearch = Depends(get_contact_search),
) -> Dict[str, Any]:
    if not company:
        raise SearchValidationError("Nom de l'entreprise requis")
    cached = await search.lookup(
        company=company,
        position=position,
        sector=sector,
        roles=[r.strip() for r in roles.split(",") if r.strip()],
        custom_role=customRole,
        website=website,
        zone=zone,
        results=results,
    )
    if cached is None:
        raise NoResultsError("Aucune recherche en cache pour cette entreprise avec ces paramètres")
    return cached


@router.post("/reveal-contact")
async def reveal_contact(
    request: RevealRequest,
    reveal: ContactReveal = Depends(get_contact_reveal),
) -> Dict[str, Any]:
    return await reveal.reveal(
        request.first_name,
        request.last_name,
        linkedin_url=request.linkedin_url,
        organization=request.organization,
    )


@router.post("/apollo-webhook")
async def apollo_webhook(
    body: Dict[str, Any] = Body(default_factory=dict),
    reveal: ContactReveal = Depends(get_contact_reveal),
) -> Dict[str, Any]:
    return await reveal.ingest_webhook(body)


@router.get("/apollo-webhook")
async def poll_revealed_phone(
    first_name: str = Query(""),
    last_name: str = Query(""),
    organization: Optional[str] = Query(None),
    reveal: ContactReveal = Depends(get_contact_reveal),
) -> Dict[str, Any]:
    return await reveal.lookup(first_name, last_name, organization)
