"""
Candidate Filter

Eligibility for matching is structural validity plus public listing.
Budget, country and condition are soft signals left to scoring; the browse
endpoint's filters, on the other hand, are hard.
"""

import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError as RecordValidationError

from ..schemas.hospital import HospitalRecord

logger = logging.getLogger(__name__)


def is_eligible(hospital: HospitalRecord) -> bool:
    return hospital.is_public_listed and not hospital.is_deleted


def parse_hospital(document: Any) -> Optional[HospitalRecord]:
    """Validate one catalog document; malformed documents yield None."""
    if isinstance(document, HospitalRecord):
        return document
    try:
        return HospitalRecord.model_validate(document)
    except RecordValidationError as e:
        doc_id = document.get("id") if isinstance(document, dict) else None
        logger.warning("Skipping malformed hospital record %r: %d error(s)", doc_id, e.error_count())
        return None


def filter_candidates(documents: Iterable[Any]) -> List[HospitalRecord]:
    """Narrow a catalog snapshot to hospitals eligible for scoring or browsing."""
    candidates = []
    for document in documents:
        hospital = parse_hospital(document)
        if hospital is not None and is_eligible(hospital):
            candidates.append(hospital)
    return candidates


def _contains(values: Iterable[Optional[str]], needle: str) -> bool:
    return any(needle in (v or "").lower() for v in values)


def browse_filter(
    hospitals: Iterable[HospitalRecord],
    city: Optional[str] = None,
    specialty: Optional[str] = None,
    condition: Optional[str] = None,
    price_min: Optional[int] = None,
    price_max: Optional[int] = None
) -> List[HospitalRecord]:
    """
    Hard filters for the browse endpoint.

    Text filters are case-insensitive containment. Price filters compare the
    hospital's own bounds (price_range_min >= price_min, price_range_max <=
    price_max); a hospital without the compared bound is excluded.
    """
    city = (city or "").strip().lower()
    specialty = (specialty or "").strip().lower()
    condition = (condition or "").strip().lower()

    out = []
    for h in hospitals:
        if not is_eligible(h):
            continue
        if city and not _contains([h.city], city):
            continue
        if specialty and not _contains(h.specialties, specialty):
            continue
        if condition and not _contains(list(h.treatments_offered) + list(h.specialties), condition):
            continue
        if price_min is not None and (h.price_range_min is None or h.price_range_min < price_min):
            continue
        if price_max is not None and (h.price_range_max is None or h.price_range_max > price_max):
            continue
        out.append(h)
    return out
