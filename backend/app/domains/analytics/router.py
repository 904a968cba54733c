"""
Analytics API Router - period statistics over FHIR data.
"""
import logging

from fastapi import APIRouter, HTTPException, status

from app.core.dependencies import AnalyticsServiceDep, DateRangeDep
from app.domains.analytics.assembler import AggregationFailure
from app.domains.analytics.schemas import (
    OverallAnalyticsResponse,
    PeriodSchema,
    RangeAnalyticsResponse,
    StatisticsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/overall", response_model=OverallAnalyticsResponse)
async def get_overall_analytics(service: AnalyticsServiceDep):
    """Statistics for the most recently updated patients and their records."""
    try:
        snapshot = await service.refresh_overall()
    except AggregationFailure as e:
        logger.error(f"Overall analytics failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch overall FHIR data. Please try again later.",
        )

    current, _ = snapshot.statistics()
    return OverallAnalyticsResponse(
        description=snapshot.description,
        fetched_at=snapshot.fetched_at,
        statistics=StatisticsResponse.from_statistics(current),
    )


@router.get("/range", response_model=RangeAnalyticsResponse)
async def get_range_analytics(range_: DateRangeDep, service: AnalyticsServiceDep):
    """Statistics for a month range compared with the preceding period."""
    try:
        snapshot = await service.refresh_range(range_)
    except AggregationFailure as e:
        logger.error(f"Range analytics for {range_} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch FHIR data for the selected range. Please try again later.",
        )

    current, previous = snapshot.statistics()
    return RangeAnalyticsResponse(
        current_period=PeriodSchema.from_range(snapshot.range),
        previous_period=PeriodSchema.from_range(snapshot.previous_range),
        fetched_at=snapshot.fetched_at,
        current=StatisticsResponse.from_statistics(current),
        previous=StatisticsResponse.from_statistics(previous),
    )
