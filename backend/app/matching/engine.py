"""
Hospital Matching Engine

Orchestrates one request:

    read catalog snapshot -> normalize intent -> filter candidates
        -> score candidates (worker pool) -> rank

The catalog is read once per request; conditions and hospitals always come
from the same snapshot. Scoring is pure and CPU-bound; each candidate is
scored on the event loop's default executor and results are gathered in
candidate order, so ranking never depends on completion order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..schemas.hospital import ConditionCatalogEntry, HospitalRecord
from .catalog import ConditionCatalog, HospitalCatalog, SnapshotCatalog
from .candidate_filter import browse_filter, filter_candidates
from .errors import CatalogUnavailable, MatchingError, MatchTimeout
from .intent import Intent, normalize_intent, require_condition
from .ranker import Page, paginate, rank, sort_for_browse
from .scoring import MatchResult, match_hospital
from .suggest import Suggestions, suggest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    """Condition catalog and eligible hospitals from one catalog read."""
    conditions: List[ConditionCatalogEntry]
    hospitals: List[HospitalRecord]


@dataclass
class MatchOutcome:
    intent: Intent
    results: List[MatchResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)


def _score_safely(intent: Intent, hospital: HospitalRecord) -> Optional[MatchResult]:
    """A single bad record must not abort the batch."""
    try:
        return match_hospital(intent, hospital)
    except Exception:
        logger.exception("Scoring failed for hospital %s; dropping it", hospital.id)
        return None


class MatchingEngine:
    """
    Stateless matching, browse and suggest over read-only catalogs.
    """

    def __init__(
        self,
        hospitals: HospitalCatalog,
        conditions: ConditionCatalog,
        timeout_seconds: Optional[float] = None,
        default_page_size: int = 20,
        max_page_size: int = 50
    ):
        self.hospitals = hospitals
        self.conditions = conditions
        self.timeout_seconds = timeout_seconds
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # -------------------------------------------------------------------------
    # CATALOG READS
    # -------------------------------------------------------------------------

    async def _read_hospitals(self) -> List[HospitalRecord]:
        try:
            documents = await self.hospitals.list_hospitals()
        except MatchingError:
            raise
        except Exception as e:
            logger.error("Hospital catalog read failed: %s", e)
            raise CatalogUnavailable(f"Hospital catalog unavailable: {e}") from e
        return filter_candidates(documents)

    async def read_snapshot(self) -> CatalogSnapshot:
        """
        Condition catalog and eligible hospitals for one request.

        A single catalog serving both sides is read once; separate catalogs
        are read one after the other.
        """
        try:
            if self.hospitals is self.conditions and isinstance(self.hospitals, SnapshotCatalog):
                documents, conditions = await self.hospitals.read_all()
            else:
                documents = await self.hospitals.list_hospitals()
                conditions = await self.conditions.list_conditions()
        except MatchingError:
            raise
        except Exception as e:
            logger.error("Catalog read failed: %s", e)
            raise CatalogUnavailable(f"Catalog unavailable: {e}") from e
        return CatalogSnapshot(conditions=list(conditions), hospitals=filter_candidates(documents))

    # -------------------------------------------------------------------------
    # MATCHING
    # -------------------------------------------------------------------------

    async def match(
        self,
        raw: Mapping[str, Any],
        limit: Optional[int] = None,
        snapshot: Optional[CatalogSnapshot] = None
    ) -> MatchOutcome:
        """
        Score and rank every eligible hospital for a raw patient request.

        Pass the snapshot a caller already read (e.g. for free-text
        extraction) to keep the whole request on one catalog read.

        Raises:
            ValidationError: condition missing (before any catalog read)
            CatalogUnavailable: catalog could not be read
            MatchTimeout: scoring exceeded the request timeout
        """
        require_condition(raw)

        if snapshot is None:
            snapshot = await self.read_snapshot()
        intent = normalize_intent(raw, snapshot.conditions)
        return await self.match_intent(intent, limit, snapshot.hospitals)

    async def match_intent(
        self,
        intent: Intent,
        limit: Optional[int] = None,
        candidates: Optional[List[HospitalRecord]] = None
    ) -> MatchOutcome:
        if candidates is None:
            candidates = await self._read_hospitals()
        if not candidates:
            logger.info("No eligible hospitals for condition '%s'", intent.condition)
            return MatchOutcome(intent=intent)

        loop = asyncio.get_running_loop()
        futures = [loop.run_in_executor(None, _score_safely, intent, h) for h in candidates]
        try:
            scored = await asyncio.wait_for(asyncio.gather(*futures), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("Matching timed out after %ss (%d candidates)", self.timeout_seconds, len(candidates))
            raise MatchTimeout(f"Matching did not finish within {self.timeout_seconds}s") from e

        results = rank([r for r in scored if r is not None], limit)
        logger.info(
            "Matched '%s': %d candidates, %d results, top score %s",
            intent.condition, len(candidates), len(results),
            results[0].match_score if results else None,
        )
        return MatchOutcome(intent=intent, results=results)

    # -------------------------------------------------------------------------
    # BROWSE AND SUGGEST
    # -------------------------------------------------------------------------

    async def browse(
        self,
        city: Optional[str] = None,
        specialty: Optional[str] = None,
        condition: Optional[str] = None,
        price_min: Optional[int] = None,
        price_max: Optional[int] = None,
        sort: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None
    ) -> Page:
        hospitals = await self._read_hospitals()
        filtered = browse_filter(hospitals, city, specialty, condition, price_min, price_max)
        return paginate(
            sort_for_browse(filtered, sort),
            page=page,
            limit=limit,
            default_limit=self.default_page_size,
            max_limit=self.max_page_size,
        )

    async def suggest(self, query: str, limit: Optional[int] = None) -> Suggestions:
        if not (query or "").strip():
            return Suggestions()
        snapshot = await self.read_snapshot()
        return suggest(query, snapshot.conditions, snapshot.hospitals, limit)
