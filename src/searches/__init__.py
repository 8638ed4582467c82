"""
Search orchestrators.

One class per search type. Each reads through the cache, calls its provider
under a timeout, extracts/normalizes/scores the answer, writes the cache and
appends a history row.
"""

from .base import SearchOutcome, run_bounded, run_with_timeout
from .brainstorming import BrainstormingSearch
from .competitor_analysis import CompetitorAnalysisSearch
from .competitor_identification import CompetitorIdentificationSearch
from .contacts import ContactSearch
from .enterprises import EnterpriseSearch
from .reveal import ContactReveal

__all__ = [
    "SearchOutcome",
    "run_bounded",
    "run_with_timeout",
    "EnterpriseSearch",
    "BrainstormingSearch",
    "CompetitorAnalysisSearch",
    "CompetitorIdentificationSearch",
    "ContactSearch",
    "ContactReveal",
]
