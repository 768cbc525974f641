from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class MatchRequest(BaseModel):
    """
    Patient treatment request. Fields are taken as-is and normalized by the
    engine, so bad budgets or unknown enum values degrade instead of failing.
    """
    model_config = ConfigDict(extra="ignore")

    condition: Any = None
    budget_min: Any = None
    budget_max: Any = None
    preferred_location: Any = None
    preferred_country: Any = None
    timeline: Any = None
    travel_type: Any = None


class MatchTextRequest(BaseModel):
    """Free-text request, e.g. "knee replacement in Chennai under 5 lakh"."""
    message: str


class IntentOut(BaseModel):
    condition: str
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    preferred_location: Optional[str] = None
    preferred_country: Optional[str] = None
    timeline: str
    travel_type: str
    catalog_condition: Optional[str] = None
    specialty: Optional[str] = None
    category: Optional[str] = None


class MatchResponse(BaseModel):
    """Ranked hospitals, each with match_score and match_breakdown, plus the echoed intent."""
    hospitals: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    intent: IntentOut
    source: Optional[str] = Field(None, description="'llm' or 'rules' for free-text requests")


class ConditionSuggestionOut(BaseModel):
    condition: str
    specialty: str
    category: str
    hospital_count: int = 0


class HospitalSuggestionOut(BaseModel):
    id: str
    name: str
    city: Optional[str] = None


class CitySuggestionOut(BaseModel):
    city: str
    count: int


class SuggestResponse(BaseModel):
    suggestions: List[ConditionSuggestionOut] = Field(default_factory=list)
    hospitals: List[HospitalSuggestionOut] = Field(default_factory=list)
    cities: List[CitySuggestionOut] = Field(default_factory=list)


class BrowseResponse(BaseModel):
    hospitals: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 0
