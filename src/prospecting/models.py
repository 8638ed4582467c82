"""
Pydantic models for prospecting requests and domain entities.

Entities serialize with camelCase aliases (``model_dump(by_alias=True)``);
request models accept the French camelCase field names sent by the search
form (``secteursActivite``, ``nombreResultats``...) as well as the Python
field names.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models exchanged over HTTP."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ===== Entities =====

class CgrPotential(WireModel):
    """Where CGR products fit inside a prospect's own products."""

    target_products: List[str] = Field(default_factory=list)
    proposed_products: List[str] = Field(default_factory=list)
    approach_argument: str = ""


class Enterprise(WireModel):
    """A manufacturer returned by the enterprise discovery provider."""

    name: str
    website: str = ""
    activity_description: str
    own_products: List[str] = Field(default_factory=list)
    cgr_potential: CgrPotential = Field(default_factory=CgrPotential)
    current_supplier_estimate: str = "Non spécifié"
    sources: List[str] = Field(default_factory=list)
    company_size: str = "Non spécifié"
    estimated_volume: str = "Non spécifié"
    geographic_zone: str = "Non spécifié"


class CgrData(WireModel):
    target_products: List[str] = Field(default_factory=list)
    proposed_products: List[str] = Field(default_factory=list)
    current_supplier_estimate: str = ""
    own_products: List[str] = Field(default_factory=list)


class Prospect(WireModel):
    """Scored enterprise projected for presentation."""

    company: str
    sector: str
    size: str
    address: str = "À identifier"
    website: str = ""
    score: float = Field(0.0, ge=0, le=10)
    reason: str = ""
    sources: List[str] = Field(default_factory=list)
    cgr_data: CgrData = Field(default_factory=CgrData)


class MarketOpportunity(WireModel):
    """One niche market suggested by brainstorming."""

    market_name: str
    justification: str
    applicable_cgr_products: List[str] = Field(default_factory=list)
    example_companies: List[str] = Field(default_factory=list)
    target_company_size: str = "Non spécifié"
    estimated_volume: str = "Non spécifié"
    specific_sub_sector: str = ""
    relevance_level: str = "moyenne"


class CompetitorAnalysis(WireModel):
    """In-depth analysis of one named competitor."""

    company_name: str = ""
    company_summary: str
    products_services: List[str] = Field(default_factory=list)
    target_markets: List[str] = Field(default_factory=list)
    client_companies: List[str] = Field(default_factory=list)
    apparent_strengths: List[str] = Field(default_factory=list)
    potential_weaknesses: List[str] = Field(default_factory=list)
    communication_strategy: str = ""
    sources: List[str] = Field(default_factory=list)


class Publication(WireModel):
    title: str
    date: str = ""
    source: str = ""
    link: Optional[str] = None
    type: str = "article"


class NewsItem(WireModel):
    title: str
    date: str = ""
    source: str = ""
    link: Optional[str] = None
    type: str = "croissance"
    strategic_impact: str = ""


class CompanyContactInfo(WireModel):
    address: str = ""
    phone: str = ""
    email: str = ""
    executives: List[str] = Field(default_factory=list)


class CompetitorProfile(WireModel):
    """A competing manufacturer found by competitor identification."""

    company_name: str
    geographic_presence: List[str] = Field(default_factory=list)
    target_markets: List[str] = Field(default_factory=list)
    company_size: str = "Non spécifiée"
    estimated_revenue: str = "Non communiqué"
    estimated_headcount: str = ""
    product_specialties: List[str] = Field(default_factory=list)
    production_type: List[str] = Field(default_factory=list)
    recent_publications: List[Publication] = Field(default_factory=list)
    recent_news: List[NewsItem] = Field(default_factory=list)
    competitive_strengths: List[str] = Field(default_factory=list)
    market_positioning: str = ""
    website: str = ""
    contact_info: CompanyContactInfo = Field(default_factory=CompanyContactInfo)
    sources: List[str] = Field(default_factory=list)
    matching_criteria: Dict[str, str] = Field(default_factory=dict)


class Contact(WireModel):
    """A person at a target company."""

    last_name: str
    first_name: str
    position: str
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    linkedin_verified: bool = False
    verified: bool = False
    custom_pitch: Optional[str] = None
    relevance_score: float = Field(0.0, ge=0, le=1)
    matched_roles: List[str] = Field(default_factory=list)
    company: str = ""
    organization: str = ""
    sector: str = ""
    sources: List[str] = Field(default_factory=list)


class SearchHistoryRecord(WireModel):
    id: str
    product: str
    location: str
    reference_urls: List[str] = Field(default_factory=list)
    results_count: int = 0
    search_query: str = ""
    created_at: datetime


# ===== Requests =====

def _clean_list(values: Optional[List[Any]]) -> List[str]:
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values or [] if v is not None and str(v).strip()]


def _clean_text(value: Optional[Any]) -> str:
    return str(value).strip() if value is not None else ""


CleanList = Annotated[List[str], BeforeValidator(_clean_list)]
CleanText = Annotated[str, BeforeValidator(_clean_text)]


class EnterpriseSearchRequest(WireModel):
    """Criteria for the enterprise (prospect) search."""

    secteurs_activite: CleanList = Field(default_factory=list)
    secteur_activite_libre: CleanText = ""
    zone_geographique: CleanList = Field(default_factory=list)
    zone_geographique_libre: CleanText = ""
    taille_entreprise: CleanText = ""
    mots_cles: CleanText = ""
    produits_cgr: CleanList = Field(default_factory=list, alias="produitsCGR")
    autres_produits: CleanText = ""
    volume_pieces: List[float] = Field(default_factory=list)
    clients_exclure: CleanText = ""
    usines_cgr: CleanList = Field(default_factory=list, alias="usinesCGR")
    nombre_resultats: int = Field(5, ge=1, le=15)

    def all_sectors(self) -> List[str]:
        return self.secteurs_activite + ([self.secteur_activite_libre] if self.secteur_activite_libre else [])

    def all_zones(self) -> List[str]:
        return self.zone_geographique + ([self.zone_geographique_libre] if self.zone_geographique_libre else [])


class BrainstormingRequest(WireModel):
    """Criteria for market brainstorming."""

    secteurs_activite: CleanList = Field(default_factory=list)
    secteur_activite_libre: CleanText = ""
    zone_geographique: CleanList = Field(default_factory=list)
    zone_geographique_libre: CleanText = ""
    produits_cgr: CleanList = Field(default_factory=list, alias="produitsCGR")
    clients_exclure: CleanText = ""
    taille_entreprise: CleanText = ""
    nombre_resultats: int = Field(5, ge=1, le=10)

    def all_sectors(self) -> List[str]:
        return self.secteurs_activite + ([self.secteur_activite_libre] if self.secteur_activite_libre else [])

    def all_zones(self) -> List[str]:
        return self.zone_geographique + ([self.zone_geographique_libre] if self.zone_geographique_libre else [])


class CompetitorAnalysisRequest(WireModel):
    """One competitor name, or a batch of up to 10."""

    nom_concurrent: CleanText = ""
    noms_concurrents: CleanList = Field(default_factory=list, max_length=10)

    def names(self) -> List[str]:
        """Requested names, de-duplicated case-insensitively, order kept."""
        seen = set()
        names: List[str] = []
        for name in ([self.nom_concurrent] if self.nom_concurrent else []) + self.noms_concurrents:
            if name.lower() not in seen:
                seen.add(name.lower())
                names.append(name)
        return names


ProductType = Literal["ressort_fil", "ressort_feuillard", "piece_plastique"]
VolumeType = Literal["petite_serie", "moyenne_serie", "grande_serie"]


class CompetitorCriteria(BaseModel):
    """One (region, product, volume) criteria set. Snake-case on the wire."""

    region_geographique: CleanText = Field(..., min_length=1)
    produit: ProductType
    volume_production: VolumeType

    def as_dict(self) -> Dict[str, str]:
        return {
            "region": self.region_geographique,
            "produit": self.produit,
            "volume": self.volume_production,
        }


class CompetitorIdentificationRequest(CompetitorCriteria):
    recherche_multiple: bool = False
    criteres_additionnels: List[CompetitorCriteria] = Field(default_factory=list)
    nombre_resultats: int = Field(5, ge=3, le=8)

    def criteria_sets(self) -> List[CompetitorCriteria]:
        main = CompetitorCriteria(
            region_geographique=self.region_geographique,
            produit=self.produit,
            volume_production=self.volume_production,
        )
        if self.recherche_multiple and self.criteres_additionnels:
            return [main] + list(self.criteres_additionnels)
        return [main]


class ContactSearchRequest(WireModel):
    """People search at one company."""

    nom_entreprise: CleanText = Field(..., min_length=1)
    poste_recherche: CleanText = ""
    secteur_activite: CleanText = ""
    contact_roles: CleanList = Field(default_factory=list)
    custom_role: CleanText = ""
    site_web_entreprise: CleanText = ""
    nombre_resultats: int = Field(10, ge=1, le=25)
    location: CleanText = ""
    zone_geographique: CleanText = ""

    def zone(self) -> str:
        return self.location or self.zone_geographique

    def requested_roles(self) -> List[str]:
        return self.contact_roles + ([self.custom_role] if self.custom_role else [])


class RevealRequest(WireModel):
    first_name: CleanText = ""
    last_name: CleanText = ""
    linkedin_url: Optional[str] = None
    organization: Optional[str] = None
