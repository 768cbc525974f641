"""Read-only catalog interfaces the engine depends on; adapters live in app.services.catalog."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from ..schemas.hospital import ConditionCatalogEntry


class HospitalCatalog(ABC):
    @abstractmethod
    async def list_hospitals(self) -> List[Dict[str, Any]]:
        """Return every hospital document (listed or not) as a plain dict."""


class ConditionCatalog(ABC):
    @abstractmethod
    async def list_conditions(self) -> List[ConditionCatalogEntry]:
        """Return the condition catalog in catalog order."""


class SnapshotCatalog(HospitalCatalog, ConditionCatalog):
    """
    Hospitals and conditions served from one underlying read, so a request
    never mixes two versions of the catalog.
    """

    @abstractmethod
    async def read_all(self) -> Tuple[List[Dict[str, Any]], List[ConditionCatalogEntry]]:
        """Return (hospital documents, condition catalog) from a single read."""

    async def list_hospitals(self) -> List[Dict[str, Any]]:
        hospitals, _ = await self.read_all()
        return hospitals

    async def list_conditions(self) -> List[ConditionCatalogEntry]:
        _, conditions = await self.read_all()
        return conditions
