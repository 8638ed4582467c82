"""
Entity normalizer.

Turns loosely-typed records parsed out of provider text into the strict
domain entities of src.prospecting.models, or rejects them.

Rules shared by every entity kind:
- strings are stringified and trimmed, None becomes ""
- lists that are not lists become []
- nested objects are normalized with the same rules and never left None
- source lists keep only absolute http(s) URLs, anything else is dropped
- a record missing one of its required fields is rejected (None)

Provider JSON mixes French field names (nom_entreprise, potentiel_cgr...) with
the occasional English or camelCase variant, so each field is read from the
first key that is present.
"""

import logging
import re
import unicodedata
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar
from urllib.parse import urlparse

from pydantic import ValidationError

from src.common.config import Config
from src.prospecting.models import (
    CgrPotential,
    CompanyContactInfo,
    CompetitorAnalysis,
    CompetitorProfile,
    Contact,
    Enterprise,
    MarketOpportunity,
    NewsItem,
    Publication,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER = "Non spécifié"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LOCKED_EMAIL_MARKER = "email_not_unlocked"
_LINKEDIN_SLUG_RE = re.compile(r"linkedin\.com/in/([^/?#]+)", re.IGNORECASE)


# ===== Coercion helpers =====

def coerce_str(value: Any, default: str = "") -> str:
    """Stringify and trim. None, dicts and lists fall back to default."""
    if value is None or isinstance(value, (dict, list)):
        return default
    text = str(value).strip()
    return text if text else default


def coerce_list(value: Any) -> List[str]:
    """List of non-empty trimmed strings; any non-list becomes []."""
    if not isinstance(value, list):
        return []
    return [s for s in (coerce_str(v) for v in value) if s]


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and " " not in value


def coerce_url_list(value: Any) -> List[str]:
    """Keep only syntactically valid absolute http(s) URLs, de-duplicated."""
    urls: List[str] = []
    for item in coerce_list(value):
        if is_http_url(item) and item not in urls:
            urls.append(item)
    return urls


def clean_website_url(value: Any) -> str:
    """
    Normalize a website field.

    'acme.fr' -> 'https://acme.fr'. Values with spaces or without a dot
    ("Non communiqué", "N/A") become "".
    """
    text = coerce_str(value)
    if not text:
        return ""
    if text.startswith(("http://", "https://")):
        return text if is_http_url(text) else ""
    if "." not in text or " " in text:
        return ""
    candidate = f"https://{text.lstrip('/')}"
    return candidate if is_http_url(candidate) else ""


def _pick(record: Dict[str, Any], *keys: str) -> Any:
    """First present, non-None value among keys."""
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def normalize_many(records: Any, fn: Callable[[Dict[str, Any]], Optional[T]]) -> List[T]:
    """Apply fn to every dict in records, dropping rejections."""
    if not isinstance(records, list):
        return []
    kept: List[T] = []
    rejected = 0
    for record in records:
        entity = fn(record) if isinstance(record, dict) else None
        if entity is None:
            rejected += 1
            continue
        kept.append(entity)
    if rejected:
        logger.info(f"Normalizer rejected {rejected}/{len(records)} records via {fn.__name__}")
    return kept


# ===== Enterprise =====

def normalize_enterprise(record: Dict[str, Any]) -> Optional[Enterprise]:
    name = coerce_str(_pick(record, "nom_entreprise", "name", "company", "entreprise"))
    description = coerce_str(_pick(record, "description_activite", "activityDescription", "description"))
    if not name or not description:
        return None

    potential = _as_dict(_pick(record, "potentiel_cgr", "cgrPotential"))
    return Enterprise(
        name=name,
        website=clean_website_url(_pick(record, "site_web", "website")),
        activity_description=description,
        own_products=coerce_list(_pick(record, "produits_entreprise", "ownProducts")),
        cgr_potential=CgrPotential(
            target_products=coerce_list(
                _pick(potential, "produits_cibles_chez_le_prospect", "targetProducts")
            ),
            proposed_products=coerce_list(
                _pick(potential, "produits_cgr_a_proposer", "proposedProducts")
            ),
            approach_argument=coerce_str(_pick(potential, "argumentaire_approche", "approachArgument")),
        ),
        current_supplier_estimate=coerce_str(
            _pick(record, "fournisseur_actuel_estimation", "currentSupplierEstimate"), PLACEHOLDER
        ),
        sources=coerce_url_list(record.get("sources")),
        company_size=coerce_str(_pick(record, "taille_entreprise", "companySize"), PLACEHOLDER),
        estimated_volume=coerce_str(_pick(record, "volume_pieces_estime", "estimatedVolume"), PLACEHOLDER),
        geographic_zone=coerce_str(_pick(record, "zone_geographique", "geographicZone"), PLACEHOLDER),
    )


# ===== Market opportunity =====

def normalize_market(record: Dict[str, Any]) -> Optional[MarketOpportunity]:
    name = coerce_str(_pick(record, "nom_marche", "marketName", "name"))
    justification = coerce_str(_pick(record, "justification", "analyse"))
    if not name or len(justification) < Config.MIN_JUSTIFICATION_CHARS:
        return None
    return MarketOpportunity(
        market_name=name,
        justification=justification,
        applicable_cgr_products=coerce_list(
            _pick(record, "produits_cgr_applicables", "applicableCgrProducts")
        ),
        example_companies=coerce_list(_pick(record, "exemples_entreprises", "exampleCompanies")),
        target_company_size=coerce_str(
            _pick(record, "taille_entreprises_cibles", "targetCompanySize"), PLACEHOLDER
        ),
        estimated_volume=coerce_str(_pick(record, "volume_pieces_estime", "estimatedVolume"), PLACEHOLDER),
        specific_sub_sector=coerce_str(_pick(record, "sous_secteur_specifique", "specificSubSector"), name),
        relevance_level=coerce_str(_pick(record, "niveau_pertinence", "relevanceLevel"), "moyenne"),
    )


# ===== Competitor analysis =====

def normalize_competitor_analysis(
    record: Dict[str, Any],
    company_name: str = "",
) -> Optional[CompetitorAnalysis]:
    summary = coerce_str(_pick(record, "synthese_entreprise", "companySummary", "synthese"))
    if not summary:
        return None
    return CompetitorAnalysis(
        company_name=company_name,
        company_summary=summary,
        products_services=coerce_list(_pick(record, "produits_services", "productsServices")),
        target_markets=coerce_list(_pick(record, "marches_cibles", "targetMarkets")),
        client_companies=coerce_list(_pick(record, "entreprises_clientes", "clientCompanies")),
        apparent_strengths=coerce_list(_pick(record, "forces_apparentes", "apparentStrengths")),
        potential_weaknesses=coerce_list(_pick(record, "faiblesses_potentielles", "potentialWeaknesses")),
        communication_strategy=coerce_str(_pick(record, "strategie_communication", "communicationStrategy")),
        sources=coerce_url_list(record.get("sources")),
    )


# ===== Competitor profile =====

def _link(value: Any) -> Optional[str]:
    text = coerce_str(value)
    return text if text and is_http_url(text) else None


def _publications(value: Any) -> List[Publication]:
    items: List[Publication] = []
    for raw in value if isinstance(value, list) else []:
        raw = _as_dict(raw)
        title = coerce_str(_pick(raw, "titre", "title"))
        if not title:
            continue
        items.append(Publication(
            title=title,
            date=coerce_str(raw.get("date")),
            source=coerce_str(raw.get("source")),
            link=_link(_pick(raw, "lien", "link")),
            type=coerce_str(raw.get("type"), "article"),
        ))
    return items


def _news(value: Any) -> List[NewsItem]:
    items: List[NewsItem] = []
    for raw in value if isinstance(value, list) else []:
        raw = _as_dict(raw)
        title = coerce_str(_pick(raw, "titre", "title"))
        if not title:
            continue
        items.append(NewsItem(
            title=title,
            date=coerce_str(raw.get("date")),
            source=coerce_str(raw.get("source")),
            link=_link(_pick(raw, "lien", "link")),
            type=coerce_str(raw.get("type"), "croissance"),
            strategic_impact=coerce_str(_pick(raw, "impact_strategique", "strategicImpact")),
        ))
    return items


def normalize_competitor_profile(record: Dict[str, Any]) -> Optional[CompetitorProfile]:
    name = coerce_str(_pick(record, "nom_entreprise", "companyName", "name"))
    positioning = coerce_str(_pick(record, "positionnement_marche", "marketPositioning"))
    specialties = coerce_list(_pick(record, "specialites_produits", "productSpecialties"))
    markets = coerce_list(_pick(record, "marches_cibles", "targetMarkets"))
    if not name or not (positioning or specialties or markets):
        return None

    contact = _as_dict(_pick(record, "contact_info", "contactInfo"))
    return CompetitorProfile(
        company_name=name,
        geographic_presence=coerce_list(_pick(record, "presence_geographique", "geographicPresence")),
        target_markets=markets,
        company_size=coerce_str(_pick(record, "taille_entreprise", "companySize"), "Non spécifiée"),
        estimated_revenue=coerce_str(_pick(record, "ca_estime", "estimatedRevenue"), "Non communiqué"),
        estimated_headcount=coerce_str(_pick(record, "effectifs_estime", "estimatedHeadcount")),
        product_specialties=specialties,
        production_type=coerce_list(_pick(record, "type_production", "productionType")),
        recent_publications=_publications(_pick(record, "publications_recentes", "recentPublications")),
        recent_news=_news(_pick(record, "actualites_recentes", "recentNews")),
        competitive_strengths=coerce_list(_pick(record, "forces_concurrentielles", "competitiveStrengths")),
        market_positioning=positioning,
        website=clean_website_url(_pick(record, "site_web", "website")),
        contact_info=CompanyContactInfo(
            address=coerce_str(_pick(contact, "adresse", "address")),
            phone=coerce_str(_pick(contact, "telephone", "phone")),
            email=coerce_str(contact.get("email")),
            executives=coerce_list(_pick(contact, "dirigeants", "executives")),
        ),
        sources=coerce_url_list(record.get("sources")),
    )


# ===== Contact =====

def slugify_name(name: str) -> str:
    """'Hélène Dupré' -> 'helene-dupre' (LinkedIn vanity-URL style)."""
    ascii_name = unicodedata.normalize("NFKD", name or "").encode("ascii", "ignore").decode("ascii")
    return re.sub(r"-+", "-", re.sub(r"[^a-z0-9]", "-", ascii_name.lower())).strip("-")


def linkedin_matches_name(url: Optional[str], first_name: str, last_name: str) -> bool:
    """
    True when a linkedin.com/in/ URL's vanity slug matches the person.

    Accepted: first-last, last-first, firstlast, lastfirst, or either name
    alone, as a substring of the slug (or the slug of a combination).
    """
    match = _LINKEDIN_SLUG_RE.search(url or "")
    if not match:
        return False
    slug = match.group(1).lower()
    first = slugify_name(first_name)
    last = slugify_name(last_name)
    combinations = [c for c in (
        f"{first}-{last}", f"{last}-{first}", f"{first}{last}", f"{last}{first}", first, last,
    ) if c and c != "-"]
    return any(c in slug or slug in c for c in combinations)


def is_valid_email(value: Optional[str]) -> bool:
    return (
        bool(value)
        and bool(_EMAIL_RE.match(value))
        and "example.com" not in value
        and LOCKED_EMAIL_MARKER not in value.lower()
    )


def usable_email(value: Any) -> Optional[str]:
    """The address, or None for placeholders such as Apollo's email_not_unlocked@domain.com."""
    email = coerce_str(value)
    return email if is_valid_email(email) else None


def clean_phone(value: Any) -> str:
    return re.sub(r"[^\d+\s\-.]", "", coerce_str(value)).strip()


def _first_phone(person: Dict[str, Any]) -> str:
    numbers = person.get("phone_numbers")
    if isinstance(numbers, list) and numbers:
        first = _as_dict(numbers[0])
        return clean_phone(_pick(first, "sanitized_number", "raw_number"))
    return clean_phone(_pick(person, "telephone", "phone"))


def normalize_contact(person: Dict[str, Any], company: str = "") -> Optional[Contact]:
    """
    Apollo person (or LLM contact record) -> Contact.

    Rejected when a name or the position is missing, or when no channel
    (email, phone, LinkedIn) is left after validation.
    """
    last_name = coerce_str(_pick(person, "last_name", "nom", "lastName"))
    first_name = coerce_str(_pick(person, "first_name", "prenom", "firstName"))
    position = coerce_str(_pick(person, "title", "poste", "position", "headline"))
    if not last_name or not first_name or not position:
        return None

    email = usable_email(person.get("email"))
    phone = _first_phone(person) or None

    linkedin = coerce_str(_pick(person, "linkedin_url", "linkedin", "linkedinUrl"))
    linkedin = linkedin if "linkedin.com/in/" in linkedin and is_http_url(linkedin) else None

    if not (email or phone or linkedin):
        return None

    organization = _as_dict(person.get("organization"))
    org_name = coerce_str(organization.get("name"))
    org_website = clean_website_url(organization.get("website_url"))

    sources = ["https://app.apollo.io"]
    for url in (linkedin, org_website):
        if url and url not in sources:
            sources.append(url)

    try:
        return Contact(
            last_name=last_name,
            first_name=first_name,
            position=position,
            email=email,
            phone=phone,
            linkedin_url=linkedin,
            linkedin_verified=linkedin_matches_name(linkedin, first_name, last_name),
            verified=bool(email) and person.get("email_status") == "verified",
            company=company or org_name,
            organization=org_name,
            sector=coerce_str(organization.get("industry")),
            sources=sources,
        )
    except ValidationError as e:
        logger.info(f"Rejected contact {first_name} {last_name}: {e.errors()[0].get('msg')}")
        return None


def dedupe_by_name(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """Keep the first item per case-insensitive name, order kept."""
    seen = set()
    unique: List[T] = []
    for item in items:
        name = key(item).strip().lower()
        if name in seen:
            continue
        seen.add(name)
        unique.append(item)
    return unique
