"""
Intent Normalizer

Turns a raw patient request (JSON body, extracted free text) into an
immutable Intent. Only a missing/empty condition is an error; every other
field degrades to "absent" or to its default.
"""

import math
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from ..schemas.hospital import ConditionCatalogEntry
from .errors import ValidationError


class Timeline(str, Enum):
    IMMEDIATE = "immediate"
    ONE_MONTH = "1_month"
    THREE_MONTHS = "3_months"
    FLEXIBLE = "flexible"


class TravelType(str, Enum):
    DOMESTIC = "domestic"
    INTERNATIONAL = "international"


@dataclass(frozen=True)
class Intent:
    """Normalized treatment request used as scoring input."""
    condition: str
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    preferred_location: Optional[str] = None
    preferred_country: Optional[str] = None
    timeline: Timeline = Timeline.FLEXIBLE
    travel_type: TravelType = TravelType.DOMESTIC

    # Filled when the condition resolves to a catalog entry
    catalog_condition: Optional[str] = None
    specialty: Optional[str] = None
    category: Optional[str] = None

    @property
    def condition_key(self) -> str:
        """
        Lower-cased condition as requested. Scoring matches hospital data
        against this only; the resolved catalog entry is metadata.
        """
        return self.condition.lower()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timeline"] = self.timeline.value
        data["travel_type"] = self.travel_type.value
        return data


def normalize_intent(
    raw: Mapping[str, Any],
    conditions: Optional[Iterable[ConditionCatalogEntry]] = None
) -> Intent:
    """
    Validate and canonicalize a raw request.

    Raises:
        ValidationError: if condition is missing or blank.
    """
    condition = require_condition(raw)

    budget_min = _coerce_budget(raw.get("budget_min"))
    budget_max = _coerce_budget(raw.get("budget_max"))
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        budget_min, budget_max = budget_max, budget_min

    entry = resolve_condition(condition, conditions) if conditions is not None else None

    return Intent(
        condition=condition,
        budget_min=budget_min,
        budget_max=budget_max,
        preferred_location=_clean_text(raw.get("preferred_location")),
        preferred_country=_clean_text(raw.get("preferred_country")),
        timeline=_coerce_enum(raw.get("timeline"), Timeline, Timeline.FLEXIBLE),
        travel_type=_coerce_enum(raw.get("travel_type"), TravelType, TravelType.DOMESTIC),
        catalog_condition=entry.condition if entry else None,
        specialty=(entry.specialty or None) if entry else None,
        category=(entry.category or None) if entry else None,
    )


def require_condition(raw: Any) -> str:
    """The one hard precondition: a non-blank condition string."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be an object")
    condition = _clean_text(raw.get("condition"))
    if not condition:
        raise ValidationError("condition is required")
    return condition


def resolve_condition(
    condition: str,
    conditions: Iterable[ConditionCatalogEntry]
) -> Optional[ConditionCatalogEntry]:
    """Find the catalog entry for a condition: exact name, then containment, then keyword."""
    entries = list(conditions)
    needle = condition.lower()

    for entry in entries:
        if entry.condition.lower() == needle:
            return entry
    if len(needle) >= 3:
        for entry in entries:
            name = entry.condition.lower()
            if needle in name or name in needle:
                return entry
    for entry in entries:
        if any(_has_phrase(needle, kw) for kw in entry.keywords):
            return entry
    return None


def _has_phrase(text: str, phrase: str) -> bool:
    phrase = phrase.strip().lower()
    return bool(phrase) and re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _coerce_budget(value: Any) -> Optional[int]:
    """User-supplied budgets: anything non-numeric or negative is treated as absent."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        cleaned = re.sub(r"[,\s_]", "", value)
        try:
            value = float(cleaned)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return int(round(value))


def _coerce_enum(value: Any, enum_cls, default):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    key = re.sub(r"[\s\-]+", "_", value.strip().lower())
    try:
        return enum_cls(key)
    except ValueError:
        return default
