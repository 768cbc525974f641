"""
Hospital Matching Module

This module provides rule-based matching of patient treatment
intents against a hospital catalog, with explainable scores,
plus typeahead suggestions over the condition catalog.
"""

from .errors import (
    MatchingError,
    ValidationError,
    CatalogUnavailable,
    MatchTimeout,
)
from .catalog import (
    HospitalCatalog,
    ConditionCatalog,
    SnapshotCatalog,
)
from .intent import (
    Intent,
    Timeline,
    TravelType,
    normalize_intent,
)
from .candidate_filter import (
    filter_candidates,
    browse_filter,
)
from .scoring import (
    WEIGHTS,
    MatchResult,
    score_hospital,
    match_hospital,
)
from .ranker import (
    Page,
    rank,
    paginate,
    sort_for_browse,
)
from .suggest import (
    Suggestions,
    suggest,
)
from .engine import (
    MatchingEngine,
    MatchOutcome,
    CatalogSnapshot,
)

__all__ = [
    "MatchingError",
    "ValidationError",
    "CatalogUnavailable",
    "MatchTimeout",
    "HospitalCatalog",
    "ConditionCatalog",
    "SnapshotCatalog",
    "Intent",
    "Timeline",
    "TravelType",
    "normalize_intent",
    "filter_candidates",
    "browse_filter",
    "WEIGHTS",
    "MatchResult",
    "score_hospital",
    "match_hospital",
    "Page",
    "rank",
    "paginate",
    "sort_for_browse",
    "Suggestions",
    "suggest",
    "MatchingEngine",
    "MatchOutcome",
    "CatalogSnapshot",
]
