"""
Suggest Index

Typeahead over the condition catalog (primary) and listed hospitals'
names, specialties and cities. Results are recomputed from the snapshot on
every call. Matching is case-insensitive substring containment; prefix hits
come first, then the rest, each group alphabetical.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..schemas.hospital import ConditionCatalogEntry, HospitalRecord
from .candidate_filter import is_eligible


@dataclass
class ConditionSuggestion:
    condition: str
    specialty: str
    category: str
    hospital_count: int = 0


@dataclass
class HospitalSuggestion:
    id: str
    name: str
    city: Optional[str] = None


@dataclass
class CitySuggestion:
    city: str
    count: int


@dataclass
class Suggestions:
    suggestions: List[ConditionSuggestion] = field(default_factory=list)
    hospitals: List[HospitalSuggestion] = field(default_factory=list)
    cities: List[CitySuggestion] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.suggestions or self.hospitals or self.cities)


def _match_rank(query: str, *texts: str) -> Optional[int]:
    """0 for a prefix hit, 1 for any other substring hit, None for no hit."""
    best = None
    for text in texts:
        text = (text or "").lower()
        if text.startswith(query):
            return 0
        if query in text:
            best = 1
    return best


def _offers(hospital: HospitalRecord, entry: ConditionCatalogEntry) -> bool:
    condition = entry.condition.lower()
    specialty = entry.specialty.lower()
    if any(condition in t.lower() for t in hospital.treatments_offered):
        return True
    return bool(specialty) and any(specialty in s.lower() for s in hospital.specialties)


def suggest_conditions(
    query: str,
    conditions: Iterable[ConditionCatalogEntry],
    hospitals: Sequence[HospitalRecord] = ()
) -> List[ConditionSuggestion]:
    q = (query or "").strip().lower()
    if not q:
        return []

    ranked = []
    for entry in conditions:
        rank = _match_rank(q, entry.condition)
        if rank is None and any(q in kw.lower() for kw in entry.keywords):
            rank = 1
        if rank is None:
            continue
        count = sum(1 for h in hospitals if _offers(h, entry))
        ranked.append((rank, entry.condition.lower(), ConditionSuggestion(
            condition=entry.condition,
            specialty=entry.specialty,
            category=entry.category,
            hospital_count=count,
        )))

    ranked.sort(key=lambda item: (item[0], item[1]))
    return [s for _, _, s in ranked]


def suggest_hospitals(query: str, hospitals: Iterable[HospitalRecord]) -> List[HospitalSuggestion]:
    q = (query or "").strip().lower()
    if not q:
        return []

    ranked = []
    for h in hospitals:
        # Name hits rank by prefix; specialty-only hits are never prefix hits
        rank = _match_rank(q, h.name)
        if rank is None and any(q in s.lower() for s in h.specialties):
            rank = 1
        if rank is None:
            continue
        ranked.append((rank, h.name.lower(), h.id, HospitalSuggestion(id=h.id, name=h.name, city=h.city)))

    ranked.sort(key=lambda item: item[:3])
    return [s for *_, s in ranked]


def suggest_cities(query: str, hospitals: Iterable[HospitalRecord]) -> List[CitySuggestion]:
    q = (query or "").strip().lower()
    if not q:
        return []

    counts: Dict[str, int] = {}
    for h in hospitals:
        if h.city and q in h.city.lower():
            counts[h.city] = counts.get(h.city, 0) + 1

    ordered = sorted(counts.items(), key=lambda kv: (_match_rank(q, kv[0]), kv[0].lower()))
    return [CitySuggestion(city=city, count=count) for city, count in ordered]


def suggest(
    query: str,
    conditions: Iterable[ConditionCatalogEntry],
    hospitals: Iterable[HospitalRecord] = (),
    limit: Optional[int] = None
) -> Suggestions:
    """
    Typeahead lookup. Empty or whitespace-only queries return empty results.

    limit caps each list independently.
    """
    if not (query or "").strip():
        return Suggestions()

    listed = [h for h in hospitals if is_eligible(h)]
    result = Suggestions(
        suggestions=suggest_conditions(query, conditions, listed),
        hospitals=suggest_hospitals(query, listed),
        cities=suggest_cities(query, listed),
    )
    if limit is not None and limit >= 0:
        result.suggestions = result.suggestions[:limit]
        result.hospitals = result.hospitals[:limit]
        result.cities = result.cities[:limit]
    return result
