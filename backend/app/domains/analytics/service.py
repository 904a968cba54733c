"""Service layer for the analytics domain."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from app.core.config import settings
from app.domains.analytics.aggregator import ProcessedData
from app.domains.analytics.assembler import PeriodAssembler
from app.domains.analytics.periods import DateRange, derive_previous_period, describe
from app.domains.analytics.reducer import Statistics, reduce
from app.domains.fhir.client import FhirClient, get_fhir_client

logger = logging.getLogger(__name__)

OVERALL = "overall"
RANGE = "range"


@dataclass(frozen=True)
class Snapshot:
    """Result of one successful assembly. Replaced wholesale, never patched."""
    mode: Literal["overall", "range"]
    current: ProcessedData
    previous: ProcessedData | None = None
    range: DateRange | None = None
    previous_range: DateRange | None = None
    fetched_at: datetime | None = None

    @property
    def description(self) -> str:
        if self.mode == OVERALL or self.range is None:
            return OVERALL
        return describe(self.range)

    def statistics(self, now: datetime | None = None) -> tuple[Statistics, Statistics | None]:
        """Reduce current and (when present) previous period data."""
        now = now or datetime.now(timezone.utc)
        previous = reduce(self.previous, now) if self.previous is not None else None
        return reduce(self.current, now), previous


class AnalyticsService:
    """
    Fetches period snapshots and keeps a reference to the latest one.

    The latest snapshot is only swapped after an assembly succeeded, so a
    failed refresh leaves the previous snapshot in place. Views that only read
    data reuse it while it is younger than ``max_age`` seconds.
    """

    def __init__(
        self,
        client: FhirClient | None = None,
        assembler: PeriodAssembler | None = None,
        max_age: float | None = None,
    ):
        self._client = client
        self._assembler = assembler
        self._latest: Snapshot | None = None
        self.max_age = max_age if max_age is not None else settings.SNAPSHOT_MAX_AGE_SECONDS

    @property
    def assembler(self) -> PeriodAssembler:
        """Lazy-load the assembler."""
        if self._assembler is None:
            self._assembler = PeriodAssembler(self._client or get_fhir_client())
        return self._assembler

    def _is_reusable(self, snapshot: Snapshot | None, range_: DateRange | None) -> bool:
        if snapshot is None or snapshot.range != range_ or snapshot.fetched_at is None:
            return False
        age = datetime.now(timezone.utc) - snapshot.fetched_at
        return age < timedelta(seconds=self.max_age)

    async def current(self, range_: DateRange | None) -> Snapshot:
        """Latest snapshot for ``range_`` if still fresh, else a refreshed one."""
        if self._is_reusable(self._latest, range_):
            return self._latest
        return await self.refresh(range_)

    async def refresh_overall(self) -> Snapshot:
        """Assemble the overall snapshot and make it the latest."""
        current = await self.assembler.assemble_overall()
        return self._publish(Snapshot(mode=OVERALL, current=current, fetched_at=datetime.now(timezone.utc)))

    async def refresh_range(self, range_: DateRange) -> Snapshot:
        """Assemble ``range_`` plus its comparison period and make it the latest."""
        current, previous = await self.assembler.assemble_comparison(range_)
        return self._publish(
            Snapshot(
                mode=RANGE,
                current=current,
                previous=previous,
                range=range_,
                previous_range=derive_previous_period(range_),
                fetched_at=datetime.now(timezone.utc),
            )
        )

    async def refresh(self, range_: DateRange | None) -> Snapshot:
        """Overall snapshot when no range is given, else a ranged one."""
        if range_ is None:
            return await self.refresh_overall()
        return await self.refresh_range(range_)

    def _publish(self, snapshot: Snapshot) -> Snapshot:
        self._latest = snapshot
        if snapshot.current.is_empty:
            logger.warning(f"Published {snapshot.description} snapshot contains no resources")
            return snapshot
        logger.info(
            f"Published {snapshot.description} snapshot with "
            f"{len(snapshot.current.patients)} patients"
        )
        return snapshot


# Singleton instance for reuse
_default_service: AnalyticsService | None = None


def get_analytics_service() -> AnalyticsService:
    """Get the default analytics service instance."""
    global _default_service
    if _default_service is None:
        _default_service = AnalyticsService()
    return _default_service
