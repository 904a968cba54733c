from datetime import date
from typing import Annotated

from fastapi import Depends, HTTPException, Query, status

from app.domains.analytics.periods import DateRange, default_range
from app.domains.analytics.service import AnalyticsService, get_analytics_service
from app.domains.insights.service import InsightsService, get_insights_service


def get_date_range(
    start: Annotated[str | None, Query(description="First month, YYYY-MM")] = None,
    end: Annotated[str | None, Query(description="Last month, YYYY-MM")] = None,
) -> DateRange:
    """Requested month range; the last three months when neither bound is given."""
    if start is None and end is None:
        return default_range(date.today())
    if start is None or end is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both start and end are required for a date range",
        )
    try:
        return DateRange.parse(start, end)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def get_optional_date_range(
    start: Annotated[str | None, Query(description="First month, YYYY-MM")] = None,
    end: Annotated[str | None, Query(description="Last month, YYYY-MM")] = None,
) -> DateRange | None:
    """No range means the overall snapshot."""
    if start is None and end is None:
        return None
    return get_date_range(start, end)


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
InsightsServiceDep = Annotated[InsightsService, Depends(get_insights_service)]

DateRangeDep = Annotated[DateRange, Depends(get_date_range)]
OptionalDateRangeDep = Annotated[DateRange | None, Depends(get_optional_date_range)]
