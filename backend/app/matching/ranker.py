"""
Ranker

Deterministic ordering for match results and browse listings, plus
page-based pagination for browse.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Generic, List, Optional, Sequence, Tuple, TypeVar

from ..schemas.hospital import HospitalRecord
from .scoring import MatchResult

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


class BrowseSort(str, Enum):
    DEFAULT = "default"
    RATING = "rating"
    OUTCOMES = "outcomes"
    PRICE = "price"


def _tie_break(hospital: HospitalRecord) -> Tuple[float, int, str]:
    # Missing ratings sort after any real rating
    rating = hospital.rating_avg if hospital.rating_avg is not None else -1.0
    return (-rating, -hospital.total_reviews, hospital.id)


def rank(results: Sequence[MatchResult], limit: Optional[int] = None) -> List[MatchResult]:
    """
    Order by match_score desc, then rating_avg desc, total_reviews desc,
    and hospital_id asc as the final always-discriminating key.
    """
    ordered = sorted(results, key=lambda r: (-r.match_score,) + _tie_break(r.hospital))
    if limit is not None and limit >= 0:
        ordered = ordered[:limit]
    return ordered


def outcome_average(hospital: HospitalRecord) -> Optional[float]:
    """Mean of the hospital's available outcome signals (condition-independent)."""
    values = []
    if hospital.rating_avg is not None:
        values.append(hospital.rating_avg * 20.0)
    if hospital.success_rates:
        values.append(sum(hospital.success_rates.values()) / len(hospital.success_rates))
    if hospital.completion_rate is not None:
        values.append(hospital.completion_rate)
    if hospital.patient_satisfaction is not None:
        values.append(hospital.patient_satisfaction)
    if not values:
        return None
    return sum(values) / len(values)


def sort_for_browse(hospitals: Sequence[HospitalRecord], sort: Optional[str] = None) -> List[HospitalRecord]:
    try:
        mode = BrowseSort((sort or BrowseSort.DEFAULT.value).lower())
    except ValueError:
        mode = BrowseSort.DEFAULT

    if mode == BrowseSort.OUTCOMES:
        def key(h):
            avg = outcome_average(h)
            return (avg is None, -(avg or 0.0), h.id)
    elif mode == BrowseSort.PRICE:
        def key(h):
            price = h.price_range_min
            return (price is None, price or 0, h.id)
    else:
        key = _tie_break

    return sorted(hospitals, key=key)


@dataclass
class Page(Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


def paginate(
    items: Sequence[T],
    page: Optional[int] = None,
    limit: Optional[int] = None,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE
) -> Page:
    """Slice one page; limit defaults to 20 and is capped at 50, page starts at 1."""
    if limit is None or limit < 1:
        limit = default_limit
    limit = min(limit, max_limit)
    page = page if page and page > 0 else 1

    total = len(items)
    total_pages = math.ceil(total / limit) if total else 0
    start = (page - 1) * limit
    return Page(
        items=list(items[start:start + limit]),
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
    )
