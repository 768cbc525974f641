import math
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Annotated, Any, Dict, List, Optional

Percent = Annotated[float, Field(ge=0, le=100)]

# Optional numeric signals and their accepted range; anything else is treated as absent
SIGNAL_RANGES = {
    "price_range_min": (0, math.inf),
    "price_range_max": (0, math.inf),
    "rating_avg": (0, 5),
    "patient_volume": (0, math.inf),
    "completion_rate": (0, 100),
    "patient_satisfaction": (0, 100),
}
INTEGER_SIGNALS = ("price_range_min", "price_range_max", "patient_volume")
LIST_FIELDS = ("specialties", "treatments_offered")
TEXT_FIELDS = ("city", "country", "address")


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _in_range(value: Any, low: float, high: float) -> Optional[float]:
    number = _number(value)
    if number is None or not (low <= number <= high):
        return None
    return number


def sanitize_document(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Degrade unusable optional fields to absent/defaults so that only the
    structural fields (id, name, listing flags) can reject a record.
    """
    data = dict(data)

    if isinstance(data.get("id"), int) and not isinstance(data.get("id"), bool):
        data["id"] = str(data["id"])

    for key in TEXT_FIELDS:
        if key in data and not isinstance(data[key], str):
            data[key] = None

    for key in LIST_FIELDS:
        value = data.get(key)
        data[key] = [v for v in value if isinstance(v, str)] if isinstance(value, list) else []

    for key, (low, high) in SIGNAL_RANGES.items():
        if key in data:
            value = _in_range(data[key], low, high)
            data[key] = int(round(value)) if value is not None and key in INTEGER_SIGNALS else value

    hours = _number(data.get("response_time_hours"))
    data["response_time_hours"] = hours if hours is not None and hours > 0 else None

    reviews = _number(data.get("total_reviews"))
    data["total_reviews"] = int(reviews) if reviews is not None and reviews >= 0 else 0

    rates = data.get("success_rates")
    if isinstance(rates, dict):
        data["success_rates"] = {
            str(k): v for k, v in ((k, _in_range(v, 0, 100)) for k, v in rates.items()) if v is not None
        }
    else:
        data["success_rates"] = {}

    if not isinstance(data.get("international_support"), (dict, InternationalSupport)):
        data["international_support"] = None

    low, high = data.get("price_range_min"), data.get("price_range_max")
    if low is not None and high is not None and low > high:
        data["price_range_min"], data["price_range_max"] = high, low

    return data


class InternationalSupport(BaseModel):
    """Services a hospital offers to patients travelling from abroad."""
    travel_assistance: bool = False
    airport_pickup: bool = False
    translator_available: bool = False
    visa_assistance: bool = False
    remote_followup: bool = False
    supported_countries: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_unusable(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if v is not None}
            countries = data.get("supported_countries")
            if countries is not None and not isinstance(countries, list):
                data.pop("supported_countries")
            elif countries:
                data["supported_countries"] = [c for c in countries if isinstance(c, str)]
            for key in ("travel_assistance", "airport_pickup", "translator_available",
                        "visa_assistance", "remote_followup"):
                if key in data and not isinstance(data[key], bool):
                    data.pop(key)
        return data


class HospitalRecord(BaseModel):
    """
    Read-only snapshot of a hospital document.

    Only id, name and the listing flags are structural: malformed or
    out-of-range optional signals are treated as absent rather than
    rejecting the record. Unknown document fields (description, website,
    facilities...) are kept so they can be echoed back in responses.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    treatments_offered: List[str] = Field(default_factory=list)

    # Currency minor units
    price_range_min: Optional[int] = Field(None, ge=0)
    price_range_max: Optional[int] = Field(None, ge=0)

    rating_avg: Optional[float] = Field(None, ge=0, le=5)
    total_reviews: int = Field(0, ge=0)
    success_rates: Dict[str, Percent] = Field(default_factory=dict)
    patient_volume: Optional[int] = Field(None, ge=0)
    completion_rate: Optional[Percent] = None
    patient_satisfaction: Optional[Percent] = None
    response_time_hours: Optional[float] = Field(None, gt=0)
    international_support: Optional[InternationalSupport] = None

    is_public_listed: bool = False
    is_deleted: bool = False

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return sanitize_document(data)
        return data


class ConditionCatalogEntry(BaseModel):
    """A treatable condition and the specialty that handles it."""
    model_config = ConfigDict(frozen=True)

    condition: str = Field(..., min_length=1)
    specialty: str = ""
    category: str = ""
    keywords: List[str] = Field(default_factory=list)
