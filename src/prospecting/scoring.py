"""
Enterprise scoring and ranking.

score_enterprise() is an additive rule set over one normalized Enterprise,
clamped to [0, 10] and rounded to one decimal:

    target products      0-3    (>=3 -> 3, >=2 -> 2, >=1 -> 1)
    proposed products    0-2.5  (0.8 per product)
    approach argument    0-2.5  (length tiers gated by factory/product keywords)
    own products         0-1.5  (0.3 per product)
    supplier estimate    0-1    (length tiers, multi-supplier lists score highest)
    sources              0-0.5  (>=3 sources incl. a recognized domain)
    website              +0.3
    description          +0.1/+0.2 (length + manufacturing vocabulary)
    R&D vocabulary       +0.5
    distributor vocab    -1.5   (applied after everything else)

rank_prospects() keeps the "good" candidates and backfills from the
[2.0, 3.0) band when fewer than 70% of the requested count qualify.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from src.common.config import Config
from src.prospecting.models import CgrData, Enterprise, Prospect

logger = logging.getLogger(__name__)

FACTORY_RE = re.compile(
    r"usine|site[s]? de production|production|fabrication|atelier|ligne[s]? d'assemblage|plant|manufactur",
    re.IGNORECASE,
)
PRODUCT_RE = re.compile(
    r"ressort|découp|decoup|tube|assemblage|injection|mécatroni|mecatroni|composant|pièce|piece",
    re.IGNORECASE,
)
MANUFACTURING_RE = re.compile(
    r"fabrique|fabricant|fabrication|production|usine|conçoit|conception|manufactur|industriel",
    re.IGNORECASE,
)
RND_RE = re.compile(
    r"r&d|r ?et ?d\b|recherche et développement|bureau d'études|ingénierie|engineering|co-développement|innovation",
    re.IGNORECASE,
)
DISTRIBUTOR_RE = re.compile(
    r"distribut|revendeur|négoce|negoce|négociant|negociant|grossiste|importateur|reseller|wholesaler",
    re.IGNORECASE,
)
RECOGNIZED_SOURCE_RE = re.compile(
    r"http|linkedin|societe\.com|verif\.com|companieshouse|kompass|europages|pappers|infogreffe",
    re.IGNORECASE,
)

SUPPLIER_PLACEHOLDERS = {"", "non spécifié", "non identifié", "non disponible", "inconnu", "n/a"}


@dataclass(frozen=True)
class ScoringWeights:
    """Tunable scoring constants. Defaults are the production values."""

    proposed_product_unit: float = 0.8
    proposed_product_cap: float = 2.5
    own_product_unit: float = 0.3
    own_product_cap: float = 1.5
    website_bonus: float = 0.3
    rnd_bonus: float = 0.5
    distributor_penalty: float = 1.5
    good_threshold: float = 3.0
    backfill_ratio: float = 0.7
    backfill_min: float = 2.0
    backfill_max: float = 3.0

    @classmethod
    def from_config(cls) -> "ScoringWeights":
        return cls(
            proposed_product_unit=Config.SCORE_PROPOSED_PRODUCT_UNIT,
            own_product_unit=Config.SCORE_OWN_PRODUCT_UNIT,
            website_bonus=Config.SCORE_WEBSITE_BONUS,
            rnd_bonus=Config.SCORE_RND_BONUS,
            distributor_penalty=Config.SCORE_DISTRIBUTOR_PENALTY,
            good_threshold=Config.SCORE_GOOD_THRESHOLD,
            backfill_ratio=Config.SCORE_BACKFILL_RATIO,
            backfill_min=Config.SCORE_BACKFILL_MIN,
            backfill_max=Config.SCORE_BACKFILL_MAX,
        )


def round_score(value: float) -> float:
    """Half-up rounding to one decimal."""
    return math.floor(value * 10 + 0.5) / 10


def _target_points(count: int) -> float:
    if count >= 3:
        return 3.0
    if count >= 2:
        return 2.0
    if count >= 1:
        return 1.0
    return 0.0


def _argument_points(argument: str) -> float:
    length = len(argument)
    has_factory = bool(FACTORY_RE.search(argument))
    has_product = bool(PRODUCT_RE.search(argument))
    if length > 400 and has_factory and has_product:
        return 2.5
    if length > 250 and has_factory and has_product:
        return 2.0
    if length > 150 and (has_factory or has_product):
        return 1.5
    if length > 80:
        return 0.5
    return 0.0


def _supplier_points(supplier: str) -> float:
    text = (supplier or "").strip()
    if text.lower() in SUPPLIER_PLACEHOLDERS:
        return 0.0
    if "," in text and len(text) > 30:
        return 1.0
    if len(text) > 30:
        return 0.7
    if len(text) > 15:
        return 0.5
    return 0.2


def _source_points(sources: Sequence[str]) -> float:
    if len(sources) >= 3 and any(RECOGNIZED_SOURCE_RE.search(s) for s in sources):
        return 0.5
    return 0.0


def _description_points(description: str) -> float:
    if not MANUFACTURING_RE.search(description):
        return 0.0
    if len(description) > 200:
        return 0.2
    if len(description) > 100:
        return 0.1
    return 0.0


def is_distributor(enterprise: Enterprise) -> bool:
    return bool(
        DISTRIBUTOR_RE.search(enterprise.activity_description)
        or DISTRIBUTOR_RE.search(enterprise.cgr_potential.approach_argument)
    )


def score_enterprise(enterprise: Enterprise, weights: Optional[ScoringWeights] = None) -> float:
    """Score one enterprise in [0, 10], one decimal."""
    weights = weights or ScoringWeights()
    potential = enterprise.cgr_potential
    argument = potential.approach_argument

    score = _target_points(len(potential.target_products))
    score += min(weights.proposed_product_cap, weights.proposed_product_unit * len(potential.proposed_products))
    score += _argument_points(argument)
    score += min(weights.own_product_cap, weights.own_product_unit * len(enterprise.own_products))
    score += _supplier_points(enterprise.current_supplier_estimate)
    score += _source_points(enterprise.sources)
    if enterprise.website.startswith("http"):
        score += weights.website_bonus
    score += _description_points(enterprise.activity_description)
    if RND_RE.search(argument):
        score += weights.rnd_bonus

    if is_distributor(enterprise):
        score -= weights.distributor_penalty

    return round_score(min(10.0, max(0.0, score)))


def to_prospect(enterprise: Enterprise, score: float, requested_size: str = "") -> Prospect:
    return Prospect(
        company=enterprise.name,
        sector=enterprise.activity_description,
        size=requested_size or enterprise.company_size,
        website=enterprise.website,
        score=score,
        reason=enterprise.cgr_potential.approach_argument,
        sources=list(enterprise.sources),
        cgr_data=CgrData(
            target_products=list(enterprise.cgr_potential.target_products),
            proposed_products=list(enterprise.cgr_potential.proposed_products),
            current_supplier_estimate=enterprise.current_supplier_estimate,
            own_products=list(enterprise.own_products),
        ),
    )


def rank_prospects(
    enterprises: Sequence[Enterprise],
    requested_count: int,
    weights: Optional[ScoringWeights] = None,
    requested_size: str = "",
) -> List[Prospect]:
    """
    Score, sort (stable, descending) and select prospects.

    Candidates scoring at least the good threshold are kept first. If they
    cover less than backfill_ratio of requested_count, candidates from the
    [backfill_min, backfill_max) band are appended in score order. The
    result is truncated to requested_count.
    """
    weights = weights or ScoringWeights()
    scored: List[Tuple[float, Enterprise]] = [(score_enterprise(e, weights), e) for e in enterprises]
    # sorted() is stable: equal scores keep provider order
    scored = sorted(scored, key=lambda pair: pair[0], reverse=True)

    primary = [pair for pair in scored if pair[0] >= weights.good_threshold]
    selected = list(primary)
    if len(primary) < weights.backfill_ratio * requested_count:
        backfill = [
            pair for pair in scored
            if weights.backfill_min <= pair[0] < weights.backfill_max
        ]
        if backfill:
            logger.info(
                f"Only {len(primary)} prospects >= {weights.good_threshold}, "
                f"backfilling {len(backfill)} from [{weights.backfill_min}, {weights.backfill_max})"
            )
        selected.extend(backfill)

    return [to_prospect(e, score, requested_size) for score, e in selected[:requested_count]]


def score_stats(prospects: Sequence[Prospect]) -> Dict[str, float]:
    if not prospects:
        return {"average": 0, "highest": 0, "lowest": 0}
    scores = [p.score for p in prospects]
    return {
        "average": round_score(sum(scores) / len(scores)),
        "highest": max(scores),
        "lowest": min(scores),
    }
