"""
CGR International reference data used to fill request defaults.
"""

from typing import List

# Catalog proposed to enterprise prospects when the form leaves products empty
ENTERPRISE_DEFAULT_PRODUCTS: List[str] = [
    "Ressorts fil",
    "Pièces découpées",
    "Formage tubes",
    "Assemblages",
    "Mécatronique",
    "Injection plastique",
]

# Full catalog used by brainstorming
BRAINSTORMING_DEFAULT_PRODUCTS: List[str] = [
    "Ressorts fil",
    "Ressorts plats",
    "Pièces découpées",
    "Formage de tubes",
    "Assemblages automatisés",
    "Mécatronique",
    "Injection plastique",
]

DEFAULT_FACTORIES: List[str] = ["Saint-Yorre", "PMPC", "Igé"]

# Existing key accounts, never proposed as prospects
STATIC_EXCLUDED_CLIENTS: List[str] = [
    "Forvia",
    "Valeo",
    "Schneider Electric",
    "Dassault Aviation",
    "Thales",
    "Safran",
]

DEFAULT_ENTERPRISE_SECTOR = "Industriel"
DEFAULT_ENTERPRISE_ZONE = "France et Europe"
DEFAULT_COMPANY_SIZE = "Toutes tailles"
DEFAULT_KEYWORDS = "composants mécaniques, précision, qualité"
DEFAULT_BRAINSTORMING_ZONES: List[str] = ["France"]
DEFAULT_IDENTIFICATION_SECTORS = "tous secteurs industriels"

PRODUCT_LABELS = {
    "ressort_fil": "Ressorts fil",
    "ressort_feuillard": "Ressorts feuillard",
    "piece_plastique": "Pièces plastique",
}

VOLUME_LABELS = {
    "petite_serie": "Petite série",
    "moyenne_serie": "Moyenne série",
    "grande_serie": "Grande série",
}

NO_RESULTS_SUGGESTIONS: List[str] = [
    "Élargir la zone géographique",
    "Ajouter des secteurs d'activité connexes",
    "Retirer le filtre de taille d'entreprise",
    "Réduire le nombre de mots-clés",
]


def exclusion_list(user_exclusions: str) -> List[str]:
    """Static key accounts plus the user's newline-separated exclusions."""
    extra = [
        line.strip()
        for line in (user_exclusions or "").split("\n")
        if line.strip() and line.strip() not in STATIC_EXCLUDED_CLIENTS
    ]
    return STATIC_EXCLUDED_CLIENTS + extra


def is_excluded(company_name: str, exclusions: List[str]) -> bool:
    """True when an excluded name appears in the company name (subsidiaries included)."""
    name = company_name.lower().strip()
    return any(
        excluded.lower().strip() and excluded.lower().strip() in name
        for excluded in exclusions
    )
