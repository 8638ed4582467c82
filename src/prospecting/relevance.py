"""
Contact relevance filter.

Decides whether a free-text job title matches the roles a user asked for.

1. Denylist: a title containing an excluded term (IT, security, marketing,
   sales, HR, finance, legal...) scores 0, whatever else it contains.
2. Otherwise the best of three matchers wins:
   - curated keyword list (0.75-0.95, +0.05 when the keyword opens the title)
   - requested role -> synonym table (0.75-0.95 by synonym specificity,
     0.95 for the full category name, 0.9 for one of its distinctive words)
   - generic industrial catch-all (0.75 with a seniority word, else 0.6)
3. Relevant when score >= threshold (0.7).

Matching is case- and accent-insensitive. With no requested role, every
category of the synonym table is tried.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from src.common.config import Config
from src.prospecting.models import Contact

logger = logging.getLogger(__name__)

DENYLIST = [
    "it", "informatique", "security", "securite", "cybersecurity", "cybersecurite",
    "software", "developer", "developpeur", "data",
    "marketing", "communication", "brand",
    "sales", "vente", "ventes", "commercial", "business development", "account manager",
    "hr", "rh", "human resources", "ressources humaines", "recruiter", "recrutement", "talent",
    "finance", "financial", "financier", "comptable", "accountant", "accounting", "controller",
    "legal", "juridique", "lawyer", "avocat", "compliance",
]

# keyword -> base score
KEYWORD_SCORES: Dict[str, float] = {
    "achat": 0.9,
    "achats": 0.9,
    "acheteur": 0.9,
    "purchasing": 0.9,
    "procurement": 0.9,
    "plant manager": 0.9,
    "buyer": 0.85,
    "sourcing": 0.85,
    "approvisionnement": 0.85,
    "production": 0.85,
    "manufacturing": 0.85,
    "r&d": 0.85,
    "supply chain": 0.8,
    "industriel": 0.8,
    "industrialisation": 0.8,
    "qualite": 0.8,
    "quality": 0.8,
    "technique": 0.8,
    "technical": 0.8,
    "engineering": 0.8,
    "ingenieur": 0.75,
    "engineer": 0.75,
    "methodes": 0.75,
}

ROLE_SYNONYMS: Dict[str, List[str]] = {
    "acheteur commodité": ["acheteur", "buyer", "purchasing", "procurement", "commodité", "commodity"],
    "acheteur projet": ["acheteur", "buyer", "purchasing", "procurement", "projet", "project"],
    "responsable achat": [
        "responsable achat", "achat", "purchasing manager", "procurement manager", "sourcing manager", "buyer",
    ],
    "responsable achats/approvisionnement": [
        "achat", "purchasing", "procurement", "sourcing", "approvisionnement", "supply",
    ],
    "directeur achat": ["directeur achat", "procurement director", "purchasing director", "chief procurement", "cpo"],
    "directeur technique/r&d/innovation": [
        "directeur technique", "technical director", "cto", "r&d", "innovation",
        "engineering director", "chief technical",
    ],
    "responsable technique": ["responsable technique", "technical manager", "engineering manager", "r&d manager"],
    "directeur production/qualité": [
        "directeur production", "production director", "manufacturing director", "operations director",
        "plant manager", "qualité", "quality director",
    ],
    "responsable production": [
        "responsable production", "production manager", "manufacturing manager", "operations manager",
    ],
    "directeur qualité": ["directeur qualité", "quality director", "qhse director"],
    "responsable qualité": ["responsable qualité", "quality manager", "qhse manager"],
    "direction générale": [
        "direction générale", "ceo", "chief executive", "managing director", "directeur général",
        "président", "president",
    ],
    "directeur général": [
        "ceo", "chief executive", "managing director", "directeur général", "président", "president",
    ],
    "directeur supply chain": ["supply chain director", "logistics director", "directeur logistique"],
    "responsable supply chain": ["supply chain manager", "logistics manager", "responsable logistique"],
    "directeur industriel": ["directeur industriel", "industrial director", "manufacturing director"],
    "responsable maintenance": ["responsable maintenance", "maintenance manager", "facility manager"],
    "responsable découpe": ["découpe", "cutting", "machining", "usinage", "production"],
    "responsable achat métal": ["achat", "buyer", "purchasing", "metal", "métal", "raw material"],
    "responsable achat ressort": ["achat", "buyer", "purchasing", "ressort", "spring"],
}

GENERIC_TERMS = [
    "operations", "operation", "maintenance", "logistique", "logistics", "supply", "plant",
    "usine", "atelier", "industrial", "process", "methods", "projet", "project", "innovation",
]

SENIORITY_WORDS = [
    "directeur", "director", "manager", "responsable", "head", "chief",
    "president", "vp", "lead", "senior", "ceo",
]

# Words of a category name too generic to count as a partial match
GENERIC_CATEGORY_WORDS = {"directeur", "direction", "responsable", "manager", "chef"}

POSITIONAL_BONUS = 0.05
MAX_SCORE = 0.95


def fold(text: str) -> str:
    """Lowercase and strip accents."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def _word_re(term: str) -> "re.Pattern[str]":
    return re.compile(r"(?<![a-z0-9])" + re.escape(term) + r"(?![a-z0-9])")


_DENY_PATTERNS = [(term, _word_re(term)) for term in DENYLIST]
_SENIORITY_PATTERNS = [_word_re(fold(w)) for w in SENIORITY_WORDS]


def _synonym_score(synonym: str) -> float:
    if len(synonym) > 8:
        return 0.95
    if len(synonym) > 5:
        return 0.85
    return 0.75


@dataclass
class RelevanceDecision:
    is_relevant: bool
    score: float
    reason: str
    matched_roles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RelevanceSettings:
    threshold: float = 0.7

    @classmethod
    def from_config(cls) -> "RelevanceSettings":
        return cls(threshold=Config.RELEVANCE_THRESHOLD)


class RelevanceFilter:
    """Deterministic title -> requested-roles classifier."""

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = threshold if threshold is not None else RelevanceSettings.from_config().threshold

    @staticmethod
    def denied_term(title: str) -> Optional[str]:
        folded = fold(title)
        for term, pattern in _DENY_PATTERNS:
            if pattern.search(folded):
                return term
        return None

    @staticmethod
    def _keyword_match(title: str) -> Tuple[float, Optional[str]]:
        best, best_keyword = 0.0, None
        for keyword, base in KEYWORD_SCORES.items():
            if keyword not in title:
                continue
            score = base + (POSITIONAL_BONUS if title.startswith(keyword) else 0.0)
            score = min(MAX_SCORE, score)
            if score > best:
                best, best_keyword = score, keyword
        return best, best_keyword

    @staticmethod
    def _role_match(title: str, role: str) -> float:
        category = fold(role)
        if category and category in title:
            return 0.95

        best = 0.0
        for synonym in ROLE_SYNONYMS.get(role.lower().strip(), [role]):
            folded = fold(synonym)
            if folded and folded in title:
                best = max(best, _synonym_score(folded))

        words = [w for w in re.split(r"[\s/]+", category) if len(w) > 3 and w not in GENERIC_CATEGORY_WORDS]
        if any(_word_re(w).search(title) for w in words):
            best = max(best, 0.9)
        return best

    @staticmethod
    def _generic_match(title: str) -> float:
        if not any(_word_re(term).search(title) for term in GENERIC_TERMS):
            return 0.0
        if any(p.search(title) for p in _SENIORITY_PATTERNS):
            return 0.75
        return 0.6

    def evaluate(self, title: str, roles: Optional[Sequence[str]] = None) -> RelevanceDecision:
        """Score one title against the requested roles."""
        denied = self.denied_term(title)
        if denied:
            return RelevanceDecision(False, 0.0, f"excluded term '{denied}'")

        folded = fold(title)
        if not folded:
            return RelevanceDecision(False, 0.0, "empty title")

        candidates = list(roles) if roles else list(ROLE_SYNONYMS)

        score, keyword = self._keyword_match(folded)
        reason = f"keyword '{keyword}'" if keyword else "no match"

        matched_roles: List[str] = []
        for role in candidates:
            role_score = self._role_match(folded, role)
            if role_score >= self.threshold:
                matched_roles.append(role)
            if role_score > score:
                score, reason = role_score, f"role '{role}'"

        generic = self._generic_match(folded)
        if generic > score:
            score, reason = generic, "generic industrial role"

        score = round(score, 2)
        return RelevanceDecision(score >= self.threshold, score, reason, matched_roles)

    def filter_contacts(self, contacts: Sequence[Contact], roles: Optional[Sequence[str]] = None) -> List[Contact]:
        """Keep relevant contacts, annotated with relevance_score and matched_roles."""
        kept: List[Contact] = []
        for contact in contacts:
            decision = self.evaluate(contact.position, roles)
            if not decision.is_relevant:
                logger.info(
                    f"Dropped contact {contact.first_name} {contact.last_name} "
                    f"('{contact.position}'): score={decision.score} ({decision.reason})"
                )
                continue
            kept.append(contact.model_copy(update={
                "relevance_score": decision.score,
                "matched_roles": decision.matched_roles,
            }))
        return kept
