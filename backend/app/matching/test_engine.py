"""
Tests for the matching engine (catalog read -> filter -> score -> rank).

Run with: python -m pytest backend/app/matching/test_engine.py -v
"""

import asyncio
import sys
import time
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from app.matching import engine as engine_module
from app.matching.catalog import ConditionCatalog, HospitalCatalog
from app.matching.engine import MatchingEngine
from app.matching.errors import CatalogUnavailable, MatchTimeout, ValidationError
from app.services.catalog import InMemoryCatalog


CONDITIONS = [
    {"condition": "Knee Replacement", "specialty": "Orthopedics", "category": "Orthopedics",
     "keywords": ["knee", "joint", "tkr"]},
    {"condition": "Cardiac Bypass (CABG)", "specialty": "Cardiology", "category": "Cardiac",
     "keywords": ["cabg", "bypass", "heart"]},
]

HOSPITALS = [
    {
        "id": "india-1", "name": "Sahyadri Ortho Centre", "city": "Pune", "country": "India",
        "specialties": ["Orthopedics"], "treatments_offered": ["Knee Replacement"],
        "success_rates": {"Knee Replacement": 92},
        "price_range_min": 250000, "price_range_max": 450000,
        "rating_avg": 4.5, "is_public_listed": True,
    },
    {
        "id": "usa-1", "name": "Lakeside Medical", "city": "Chicago", "country": "USA",
        "specialties": ["Orthopedics"], "treatments_offered": ["Knee Replacement"],
        "success_rates": {"Knee Replacement": 92},
        "price_range_min": 250000, "price_range_max": 450000,
        "rating_avg": 4.5, "is_public_listed": True,
    },
    {
        "id": "hidden-1", "name": "Unlisted Ortho", "country": "India",
        "success_rates": {"Knee Replacement": 99}, "rating_avg": 5, "is_public_listed": False,
    },
    {"_id": 77, "name": "", "is_public_listed": True},
    {
        "id": "heart-1", "name": "Pune Heart Institute", "city": "Pune", "country": "India",
        "specialties": ["Cardiology"], "price_range_min": 100000, "price_range_max": 900000,
        "rating_avg": 4.0, "response_time_hours": 12, "is_public_listed": True,
    },
]

KNEE_REQUEST = {
    "condition": "Knee Replacement",
    "budget_min": 200000,
    "budget_max": 500000,
    "preferred_country": "India",
    "travel_type": "domestic",
}


class BrokenCatalog(HospitalCatalog, ConditionCatalog):
    """Every read fails, as if the backing store were down."""

    def __init__(self):
        self.reads = 0

    async def list_hospitals(self):
        self.reads += 1
        raise ConnectionError("store unreachable")

    async def list_conditions(self):
        self.reads += 1
        raise ConnectionError("store unreachable")


def make_engine(hospitals=HOSPITALS, conditions=CONDITIONS, **kwargs) -> MatchingEngine:
    catalog = InMemoryCatalog(hospitals, conditions)
    return MatchingEngine(catalog, catalog, **kwargs)


def test_match_ranks_listed_hospitals():
    print("\n" + "="*60)
    print("TEST: Engine match")
    print("="*60)

    outcome = asyncio.run(make_engine().match(KNEE_REQUEST))
    for r in outcome.results:
        print(f"  {r.hospital_id}: {r.match_score} {r.match_breakdown}")

    ids = [r.hospital_id for r in outcome.results]
    assert ids[0] == "india-1"
    assert outcome.results[0].match_score == 93
    assert outcome.results[0].match_breakdown["condition_relevance"] == 100
    assert outcome.results[0].match_breakdown["budget_fit"] == 100
    assert "hidden-1" not in ids
    assert outcome.total == 3
    assert outcome.intent.catalog_condition == "Knee Replacement"


def test_match_limit():
    outcome = asyncio.run(make_engine().match(KNEE_REQUEST, limit=1))
    assert [r.hospital_id for r in outcome.results] == ["india-1"]


def test_match_is_deterministic():
    engine = make_engine()
    first = asyncio.run(engine.match(KNEE_REQUEST))
    second = asyncio.run(engine.match(KNEE_REQUEST))

    assert [r.hospital_id for r in first.results] == [r.hospital_id for r in second.results]
    assert [r.match_score for r in first.results] == [r.match_score for r in second.results]
    assert [r.match_breakdown for r in first.results] == [r.match_breakdown for r in second.results]


def test_empty_catalog_returns_empty_result():
    outcome = asyncio.run(make_engine(hospitals=[]).match(KNEE_REQUEST))
    assert outcome.results == []
    assert outcome.total == 0


def test_missing_condition_fails_before_catalog_read():
    catalog = BrokenCatalog()
    engine = MatchingEngine(catalog, catalog)
    with pytest.raises(ValidationError):
        asyncio.run(engine.match({"budget_max": 100000}))
    assert catalog.reads == 0


def test_catalog_failure_is_catalog_unavailable():
    catalog = BrokenCatalog()
    engine = MatchingEngine(catalog, catalog)
    with pytest.raises(CatalogUnavailable):
        asyncio.run(engine.match(KNEE_REQUEST))
    with pytest.raises(CatalogUnavailable):
        asyncio.run(engine.browse())


def test_one_failing_score_does_not_abort_batch(monkeypatch):
    real = engine_module.match_hospital

    def flaky(intent, hospital):
        if hospital.id == "usa-1":
            raise RuntimeError("corrupt record")
        return real(intent, hospital)

    monkeypatch.setattr(engine_module, "match_hospital", flaky)
    outcome = asyncio.run(make_engine().match(KNEE_REQUEST))
    assert [r.hospital_id for r in outcome.results] == ["india-1", "heart-1"]


def test_slow_scoring_times_out(monkeypatch):
    def slow(intent, hospital):
        time.sleep(0.3)
        return None

    monkeypatch.setattr(engine_module, "_score_safely", slow)
    with pytest.raises(MatchTimeout):
        asyncio.run(make_engine(timeout_seconds=0.01).match(KNEE_REQUEST))


def test_browse_filters_sorts_and_pages():
    engine = make_engine(default_page_size=2)

    page = asyncio.run(engine.browse())
    assert page.total == 3
    assert page.total_pages == 2
    assert [h.id for h in page.items] == ["india-1", "usa-1"]

    page = asyncio.run(engine.browse(city="pune", sort="price"))
    assert [h.id for h in page.items] == ["heart-1", "india-1"]

    page = asyncio.run(engine.browse(condition="knee", price_max=500000))
    assert [h.id for h in page.items] == ["india-1", "usa-1"]


def test_suggest_via_engine():
    engine = make_engine()
    result = asyncio.run(engine.suggest("pu"))
    assert [c.city for c in result.cities] == ["Pune"]
    assert result.cities[0].count == 2
    assert [h.name for h in result.hospitals] == ["Pune Heart Institute"]

    assert asyncio.run(engine.suggest("")).is_empty()


class CountingCatalog(InMemoryCatalog):
    def __init__(self, *args):
        super().__init__(*args)
        self.reads = 0

    async def read_all(self):
        self.reads += 1
        return await super().read_all()


def test_match_reads_one_catalog_snapshot():
    catalog = CountingCatalog(HOSPITALS, CONDITIONS)
    engine = MatchingEngine(catalog, catalog)

    outcome = asyncio.run(engine.match(KNEE_REQUEST))
    assert catalog.reads == 1
    assert outcome.results[0].hospital_id == "india-1"

    snapshot = asyncio.run(engine.read_snapshot())
    assert catalog.reads == 2
    assert [h.id for h in snapshot.hospitals] == ["india-1", "usa-1", "heart-1"]
    assert [c.condition for c in snapshot.conditions] == ["Knee Replacement", "Cardiac Bypass (CABG)"]

    # A caller-held snapshot is reused, not re-read
    asyncio.run(engine.match({"condition": "cabg"}, snapshot=snapshot))
    assert catalog.reads == 2

    asyncio.run(engine.suggest("kn"))
    assert catalog.reads == 3


def test_separate_catalogs_each_read_once():
    hospitals = CountingCatalog(HOSPITALS, [])
    conditions = CountingCatalog([], CONDITIONS)
    outcome = asyncio.run(MatchingEngine(hospitals, conditions).match(KNEE_REQUEST))
    assert (hospitals.reads, conditions.reads) == (1, 1)
    assert outcome.intent.catalog_condition == "Knee Replacement"
    assert outcome.total == 3
