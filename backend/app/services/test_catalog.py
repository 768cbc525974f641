"""
Tests for the read-only catalog adapters.

Run with: python -m pytest backend/app/services/test_catalog.py -v
"""

import asyncio
import json
import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from app.core.config import DEFAULT_CATALOG_PATH
from app.matching.candidate_filter import filter_candidates
from app.matching.errors import CatalogUnavailable
from app.services.catalog import InMemoryCatalog, JsonFileCatalog, coerce_document


def test_coerce_document_ids_and_maps():
    doc = coerce_document({
        "_id": "65f0c0ffee",
        "name": "Apollo",
        "success_rates": [["Knee Replacement", 97], {"k": "Angioplasty", "v": 98}],
    })
    assert doc["id"] == "65f0c0ffee"
    assert "_id" not in doc
    assert doc["success_rates"] == {"Knee Replacement": 97, "Angioplasty": 98}

    assert coerce_document({"id": 12, "name": "X"})["id"] == "12"


def test_in_memory_catalog_skips_bad_condition_entries():
    catalog = InMemoryCatalog(
        hospitals=[{"id": "a", "name": "A"}],
        conditions=[{"condition": "Knee Replacement"}, {"condition": ""}, "junk"],
    )
    conditions = asyncio.run(catalog.list_conditions())
    assert [c.condition for c in conditions] == ["Knee Replacement"]
    assert len(asyncio.run(catalog.list_hospitals())) == 1


def test_bundled_catalog_loads():
    catalog = JsonFileCatalog(str(DEFAULT_CATALOG_PATH))
    conditions = asyncio.run(catalog.list_conditions())
    documents = asyncio.run(catalog.list_hospitals())
    listed = filter_candidates(documents)
    print(f"\nConditions: {len(conditions)}, documents: {len(documents)}, listed: {len(listed)}")

    assert len(conditions) == 17
    assert len(listed) < len(documents)
    assert all(h.is_public_listed and not h.is_deleted for h in listed)


def test_missing_file_is_catalog_unavailable(tmp_path):
    catalog = JsonFileCatalog(str(tmp_path / "missing.json"))
    with pytest.raises(CatalogUnavailable):
        asyncio.run(catalog.list_hospitals())


def test_bad_json_is_catalog_unavailable(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogUnavailable):
        asyncio.run(JsonFileCatalog(str(path)).list_conditions())

    path.write_text(json.dumps({"hospitals": {"oops": 1}}), encoding="utf-8")
    with pytest.raises(CatalogUnavailable):
        asyncio.run(JsonFileCatalog(str(path)).list_hospitals())


def test_file_is_reread_on_every_call(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"hospitals": [], "conditions": []}), encoding="utf-8")
    catalog = JsonFileCatalog(str(path))
    assert asyncio.run(catalog.list_hospitals()) == []

    path.write_text(json.dumps({"hospitals": [{"id": "a", "name": "A"}]}), encoding="utf-8")
    assert len(asyncio.run(catalog.list_hospitals())) == 1


def test_only_scored_map_fields_are_coerced():
    pairs = [["Knee Replacement", 300000]]
    doc = coerce_document({"id": "a", "name": "A", "average_cost_by_treatment": pairs})
    # Passed through untouched as an extra field for the response
    assert doc["average_cost_by_treatment"] == pairs


def test_read_all_uses_one_file_read(tmp_path, monkeypatch):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "hospitals": [{"id": "a", "name": "A"}],
        "conditions": [{"condition": "Knee Replacement"}],
    }), encoding="utf-8")
    catalog = JsonFileCatalog(str(path))

    reads = []
    real = catalog._read
    monkeypatch.setattr(catalog, "_read", lambda: reads.append(1) or real())

    hospitals, conditions = asyncio.run(catalog.read_all())
    assert len(reads) == 1
    assert [h["id"] for h in hospitals] == ["a"]
    assert [c.condition for c in conditions] == ["Knee Replacement"]
