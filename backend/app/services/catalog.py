"""
Read-only catalog adapters.

The engine only ever reads a snapshot of hospital documents and the
condition catalog. Storage-format quirks (ObjectId-style "_id", map fields
serialized as key/value pairs) are coerced here so the engine receives
plain dictionaries.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as RecordValidationError

from ..core.config import settings
from ..matching.catalog import SnapshotCatalog
from ..matching.errors import CatalogUnavailable
from ..schemas.hospital import ConditionCatalogEntry

logger = logging.getLogger(__name__)

# Document fields stored as maps by the persistence layer
MAP_FIELDS = ("success_rates",)


def _coerce_map(value: Any) -> Any:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        pairs = {}
        for item in value:
            if isinstance(item, (list, tuple)) and len(item) == 2:
                pairs[str(item[0])] = item[1]
            elif isinstance(item, dict) and "k" in item and "v" in item:
                pairs[str(item["k"])] = item["v"]
            else:
                # Leave malformed maps for record validation to reject
                return value
        return pairs
    return value


def coerce_document(document: Any) -> Any:
    """Normalize one stored hospital document into the engine's plain shape."""
    if not isinstance(document, dict):
        return document
    doc = dict(document)
    if "id" not in doc and "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    elif isinstance(doc.get("id"), int):
        doc["id"] = str(doc["id"])
    for key in MAP_FIELDS:
        if key in doc:
            doc[key] = _coerce_map(doc[key])
    return doc


def parse_conditions(raw: Iterable[Any]) -> List[ConditionCatalogEntry]:
    entries = []
    for item in raw:
        try:
            entries.append(ConditionCatalogEntry.model_validate(item))
        except RecordValidationError:
            logger.warning("Skipping malformed condition catalog entry: %r", item)
    return entries


class InMemoryCatalog(SnapshotCatalog):
    """Catalog over documents already held in memory (tests, embedding callers)."""

    def __init__(
        self,
        hospitals: Optional[Iterable[Any]] = None,
        conditions: Optional[Iterable[Any]] = None
    ):
        self._hospitals = [coerce_document(h) for h in (hospitals or [])]
        self._conditions = parse_conditions(conditions or [])

    async def read_all(self) -> Tuple[List[Dict[str, Any]], List[ConditionCatalogEntry]]:
        return list(self._hospitals), list(self._conditions)


class JsonFileCatalog(SnapshotCatalog):
    """
    Catalog backed by a JSON snapshot file:

        {"hospitals": [...], "conditions": [...]}

    The file is re-read on every call so edits are picked up without a
    restart. Both sections of one read_all come from the same file read.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Catalog snapshot %s unreadable: %s", self.path, e)
            raise CatalogUnavailable(f"Catalog unavailable: {e}") from e
        if not isinstance(data, dict):
            raise CatalogUnavailable("Catalog snapshot must be a JSON object")
        return data

    @staticmethod
    def _section(data: Dict[str, Any], key: str) -> List[Any]:
        section = data.get(key, [])
        if not isinstance(section, list):
            raise CatalogUnavailable(f"Catalog section '{key}' must be a list")
        return section

    async def read_all(self) -> Tuple[List[Dict[str, Any]], List[ConditionCatalogEntry]]:
        data = await asyncio.to_thread(self._read)
        hospitals = [coerce_document(h) for h in self._section(data, "hospitals")]
        return hospitals, parse_conditions(self._section(data, "conditions"))


# Singleton instance
catalog_service = JsonFileCatalog(settings.CATALOG_PATH)
