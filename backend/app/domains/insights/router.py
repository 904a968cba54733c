"""
Insights API Router - narrative reports over period statistics.
"""
import logging

from fastapi import APIRouter, HTTPException, status

from app.core.dependencies import AnalyticsServiceDep, InsightsServiceDep, OptionalDateRangeDep
from app.domains.analytics.assembler import AggregationFailure
from app.domains.insights.schemas import RegionalInsightsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/regional", response_model=RegionalInsightsResponse)
async def generate_regional_insights(
    range_: OptionalDateRangeDep,
    analytics: AnalyticsServiceDep,
    insights: InsightsServiceDep,
):
    """
    Population-level insights for a month range (with comparison) or, without
    a range, for the overall snapshot.
    """
    try:
        snapshot = await analytics.refresh(range_)
    except AggregationFailure as e:
        logger.error(f"Insights data fetch failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch FHIR data. Please try again later.",
        )

    current, previous = snapshot.statistics()
    result = await insights.regional_insights(current, previous, snapshot.description)
    return RegionalInsightsResponse(
        status=result.status,
        description=snapshot.description,
        insights=result.insights,
        error=result.error,
    )
