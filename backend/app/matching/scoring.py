"""
Hospital Scoring Engine

Scores one hospital against one patient Intent along five independent
dimensions, each normalized to 0-100:

    condition_relevance  (0.35)  requested condition in success rates or treatments
    budget_fit           (0.20)  overlap of requested budget and price range
    location_fit         (0.15)  country and city preference, travel type
    outcome_quality      (0.20)  rating, success rate, completion, satisfaction
    responsiveness       (0.10)  response time in hours

The overall score is the weighted sum, rounded half-up and clamped to
[0, 100]. Every function here is pure: same (Intent, HospitalRecord) in,
same score out.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..schemas.hospital import HospitalRecord
from .intent import Intent, TravelType


# =============================================================================
# WEIGHTS AND CONSTANTS
# =============================================================================

WEIGHTS: Dict[str, float] = {
    "condition_relevance": 0.35,
    "budget_fit": 0.20,
    "location_fit": 0.15,
    "outcome_quality": 0.20,
    "responsiveness": 0.10,
}

# Condition relevance tiers
SUCCESS_RATE_MATCH = 100.0
TREATMENT_MATCH = 70.0
UNMATCHED = 30.0

# Budget fit when only some bounds are known
PARTIAL_BUDGET_FIT = 50.0

# Location fit for a country mismatch
ABROAD_WITH_SUPPORT = 40.0
ABROAD_WITHOUT_SUPPORT = 20.0
DOMESTIC_MISMATCH_PENALTY = 0.5

# Outcome signal weights; the success rate for the requested condition counts double
OUTCOME_SIGNAL_WEIGHTS: Dict[str, float] = {
    "rating": 1.0,
    "success_rate": 2.0,
    "completion_rate": 1.0,
    "patient_satisfaction": 1.0,
}

# Responsiveness: full marks within a day, zero after a week
FAST_RESPONSE_HOURS = 24.0
SLOW_RESPONSE_HOURS = 168.0

NEUTRAL = 50.0


@dataclass
class MatchResult:
    """Scored hospital with an explainable breakdown."""
    hospital: HospitalRecord
    match_score: int
    match_breakdown: Dict[str, float] = field(default_factory=dict)

    @property
    def hospital_id(self) -> str:
        return self.hospital.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.hospital.model_dump()
        data["match_score"] = self.match_score
        data["match_breakdown"] = dict(self.match_breakdown)
        return data


# =============================================================================
# SUB-SCORES
# =============================================================================

def score_condition_relevance(intent: Intent, hospital: HospitalRecord) -> float:
    condition = intent.condition_key

    if _success_rate(intent, hospital) is not None:
        return SUCCESS_RATE_MATCH

    for entry in list(hospital.specialties) + list(hospital.treatments_offered):
        entry = entry.lower()
        if entry and (condition in entry or entry in condition):
            return TREATMENT_MATCH

    return UNMATCHED


def score_budget_fit(intent: Intent, hospital: HospitalRecord) -> float:
    """
    Overlap between the requested budget and the hospital's price range.

    With both ranges complete the score is overlap / shorter range, so a range
    that fully contains the other scores 100. With only some bounds known the
    best we can say is "not contradicted" (50) or "contradicted" (0).
    """
    b_min, b_max = intent.budget_min, intent.budget_max
    h_min, h_max = hospital.price_range_min, hospital.price_range_max

    if (b_min is None and b_max is None) or (h_min is None and h_max is None):
        return 100.0

    if None not in (b_min, b_max, h_min, h_max):
        overlap = min(b_max, h_max) - max(b_min, h_min)
        if overlap < 0:
            return 0.0
        shorter = min(b_max - b_min, h_max - h_min)
        if shorter == 0:
            return 100.0
        return _clamp(100.0 * overlap / shorter)

    low = max(_or(b_min, -math.inf), _or(h_min, -math.inf))
    high = min(_or(b_max, math.inf), _or(h_max, math.inf))
    return PARTIAL_BUDGET_FIT if low <= high else 0.0


def score_location_fit(intent: Intent, hospital: HospitalRecord) -> float:
    country_mismatch = False
    score = 100.0

    if intent.preferred_country:
        wanted = intent.preferred_country.lower()
        actual = (hospital.country or "").lower()
        if actual != wanted:
            country_mismatch = True
            support = hospital.international_support
            if support and (support.travel_assistance or support.visa_assistance):
                score = ABROAD_WITH_SUPPORT
            else:
                score = ABROAD_WITHOUT_SUPPORT

    if intent.preferred_location and hospital.city:
        if intent.preferred_location.lower() in hospital.city.lower():
            score = 100.0

    if country_mismatch and intent.travel_type == TravelType.DOMESTIC:
        score *= DOMESTIC_MISMATCH_PENALTY

    return score


def score_outcome_quality(intent: Intent, hospital: HospitalRecord) -> float:
    signals: List[Tuple[float, float]] = []

    if hospital.rating_avg is not None:
        signals.append((hospital.rating_avg * 20.0, OUTCOME_SIGNAL_WEIGHTS["rating"]))

    rate = _success_rate(intent, hospital)
    if rate is not None:
        signals.append((rate, OUTCOME_SIGNAL_WEIGHTS["success_rate"]))

    if hospital.completion_rate is not None:
        signals.append((hospital.completion_rate, OUTCOME_SIGNAL_WEIGHTS["completion_rate"]))

    if hospital.patient_satisfaction is not None:
        signals.append((hospital.patient_satisfaction, OUTCOME_SIGNAL_WEIGHTS["patient_satisfaction"]))

    if not signals:
        return NEUTRAL

    total_weight = sum(w for _, w in signals)
    return _clamp(sum(v * w for v, w in signals) / total_weight)


def score_responsiveness(hospital: HospitalRecord) -> float:
    hours = hospital.response_time_hours
    if hours is None:
        return NEUTRAL
    if hours <= FAST_RESPONSE_HOURS:
        return 100.0
    if hours >= SLOW_RESPONSE_HOURS:
        return 0.0
    span = SLOW_RESPONSE_HOURS - FAST_RESPONSE_HOURS
    return 100.0 * (SLOW_RESPONSE_HOURS - hours) / span


# =============================================================================
# COMBINED SCORE
# =============================================================================

def score_hospital(intent: Intent, hospital: HospitalRecord) -> Tuple[int, Dict[str, float]]:
    """Overall 0-100 score plus the five sub-scores that produced it."""
    breakdown = {
        "condition_relevance": score_condition_relevance(intent, hospital),
        "budget_fit": score_budget_fit(intent, hospital),
        "location_fit": score_location_fit(intent, hospital),
        "outcome_quality": score_outcome_quality(intent, hospital),
        "responsiveness": score_responsiveness(hospital),
    }
    breakdown = {k: round(_clamp(v), 1) for k, v in breakdown.items()}

    total = sum(breakdown[k] * w for k, w in WEIGHTS.items())
    score = int(_clamp(math.floor(total + 0.5)))
    return score, breakdown


def match_hospital(intent: Intent, hospital: HospitalRecord) -> MatchResult:
    score, breakdown = score_hospital(intent, hospital)
    return MatchResult(hospital=hospital, match_score=score, match_breakdown=breakdown)


# =============================================================================
# HELPERS
# =============================================================================

def _success_rate(intent: Intent, hospital: HospitalRecord) -> Optional[float]:
    by_name = {k.lower(): v for k, v in hospital.success_rates.items()}
    return by_name.get(intent.condition_key)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _or(value, default):
    return default if value is None else value
