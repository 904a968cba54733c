"""
Period Data Assembler - builds one ProcessedData per period.

Orchestrates the FHIR client, the period resolver and the aggregator. All
fetches of a period run concurrently, and the two periods of a comparison run
concurrently as well. Any fetch failure aborts the whole assembly and cancels
the fetches still in flight.
"""
import asyncio
import logging
from typing import Any, Coroutine, TypeVar

from app.core.config import settings
from app.domains.analytics.aggregator import (
    ProcessedData,
    build_processed_data,
    collect_patient_ids,
    empty_processed_data,
)
from app.domains.analytics.periods import DateRange, derive_previous_period, to_date_interval
from app.domains.fhir.client import FetchError, FhirClient
from app.domains.fhir.types import CONDITION, ENCOUNTER, OBSERVATION

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def gather_or_cancel(*coros: Coroutine[Any, Any, T]) -> list[T]:
    """
    Run coroutines concurrently and return their results in order.

    The first failure cancels the others and is re-raised unwrapped.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except ExceptionGroup as eg:
        raise eg.exceptions[0]
    return [task.result() for task in tasks]


class AggregationFailure(Exception):
    """Raised when any fetch of a multi-resource assembly failed."""

    def __init__(self, message: str, cause: FetchError | None = None):
        self.cause = cause
        super().__init__(message)


class PeriodAssembler:
    """Assembles date-ranged and overall datasets from a FHIR server."""

    def __init__(self, client: FhirClient):
        self.client = client

    async def assemble_range(self, range_: DateRange) -> ProcessedData:
        """
        Fetch everything recorded in a month range.

        Observations and encounters are bounded on both sides, conditions only
        from below (recorded-date >= start).

        Raises:
            AggregationFailure: If any resource type could not be fetched
        """
        try:
            return await self._assemble_range(range_)
        except FetchError as e:
            logger.error(f"Assembly for {range_} failed: {e}")
            raise AggregationFailure(f"Failed to fetch FHIR data for {range_}", e) from e

    async def _assemble_range(self, range_: DateRange) -> ProcessedData:
        start, end = to_date_interval(range_)
        observations, conditions, encounters = await gather_or_cancel(
            self.client.get_observations(start, end),
            self.client.get_conditions(start, end),
            self.client.get_encounters(start, end),
        )

        patient_ids = collect_patient_ids(observations, conditions, encounters)
        patients = await self.client.get_patients_by_ids(sorted(patient_ids)) if patient_ids else []

        logger.info(
            f"Assembled {range_}: {len(patients)} patients, {len(observations)} observations, "
            f"{len(conditions)} conditions, {len(encounters)} encounters"
        )
        return build_processed_data(patients, observations, conditions, encounters)

    async def assemble_overall(self) -> ProcessedData:
        """
        Cross-sectional snapshot of the most recently updated patients.

        Raises:
            AggregationFailure: If any resource type could not be fetched
        """
        try:
            return await self._assemble_overall()
        except FetchError as e:
            logger.error(f"Overall assembly failed: {e}")
            raise AggregationFailure("Failed to fetch overall FHIR data", e) from e

    async def _assemble_overall(self) -> ProcessedData:
        patients = await self.client.get_recent_patients(settings.OVERALL_PATIENT_COUNT)
        if not patients:
            logger.info("No patients found, returning empty overall dataset")
            return empty_processed_data()

        patient_ids = [p.id for p in patients]
        count = settings.OVERALL_RESOURCE_COUNT
        observations, conditions, encounters = await gather_or_cancel(
            self.client.get_for_subjects(OBSERVATION, patient_ids, count=count, sort="-date"),
            self.client.get_for_subjects(CONDITION, patient_ids, count=count),
            self.client.get_for_subjects(ENCOUNTER, patient_ids, count=count, sort="-date"),
        )

        logger.info(
            f"Assembled overall: {len(patients)} patients, {len(observations)} observations, "
            f"{len(conditions)} conditions, {len(encounters)} encounters"
        )
        return build_processed_data(patients, observations, conditions, encounters)

    async def assemble_comparison(self, range_: DateRange) -> tuple[ProcessedData, ProcessedData]:
        """
        Assemble ``range_`` and the equally long period right before it.

        Either result may be empty. A failure in either period raises a single
        AggregationFailure; no partial pair is returned.
        """
        previous = derive_previous_period(range_)
        try:
            current_data, previous_data = await gather_or_cancel(
                self._assemble_range(range_),
                self._assemble_range(previous),
            )
        except FetchError as e:
            logger.error(f"Comparison assembly for {range_} (previous {previous}) failed: {e}")
            raise AggregationFailure(
                "Failed to fetch FHIR data for the selected range", e
            ) from e
        return current_data, previous_data
