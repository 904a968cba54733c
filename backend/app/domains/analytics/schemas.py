"""Pydantic schemas for the analytics domain."""
from datetime import datetime

from pydantic import BaseModel, Field

from app.domains.analytics.periods import DateRange, describe
from app.domains.analytics.reducer import Statistics


# --- Statistics Schemas ---

class NameValueSchema(BaseModel):
    name: str
    value: int


class AgeGroupSchema(BaseModel):
    name: str
    patients: int


class ConditionCountSchema(BaseModel):
    name: str
    count: int


class TrendPointSchema(BaseModel):
    date: str
    count: int


class StatisticsResponse(BaseModel):
    """Aggregates for one period."""
    total_patients: int
    total_encounters: int
    active_cases: int
    resolved_cases: int
    gender_data: list[NameValueSchema] = Field(default_factory=list)
    age_group_data: list[AgeGroupSchema] = Field(default_factory=list)
    top_conditions: list[ConditionCountSchema] = Field(default_factory=list)
    encounter_trend: list[TrendPointSchema] = Field(default_factory=list)

    @classmethod
    def from_statistics(cls, stats: Statistics) -> "StatisticsResponse":
        return cls(**stats.to_dict())


# --- Period Schemas ---

class PeriodSchema(BaseModel):
    start: str  # YYYY-MM
    end: str  # YYYY-MM
    description: str

    @classmethod
    def from_range(cls, range_: DateRange) -> "PeriodSchema":
        return cls(start=str(range_.start), end=str(range_.end), description=describe(range_))


# --- Response Schemas ---

class OverallAnalyticsResponse(BaseModel):
    """Statistics for the overall (most recent patients) snapshot."""
    description: str
    fetched_at: datetime | None = None
    statistics: StatisticsResponse


class RangeAnalyticsResponse(BaseModel):
    """Statistics for a month range and the period right before it."""
    current_period: PeriodSchema
    previous_period: PeriodSchema
    fetched_at: datetime | None = None
    current: StatisticsResponse
    previous: StatisticsResponse
