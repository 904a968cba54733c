"""Analytics Reducer - statistics over one ProcessedData snapshot.

Pure functions: no I/O, deterministic for a given input and reference time.
"""
import math
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from app.domains.analytics.aggregator import ProcessedData
from app.domains.fhir.types import Patient

# Fixed-length year of 365.25 days, in milliseconds
MS_PER_YEAR = 3.15576e10

AGE_GROUPS = (
    ("0-18", 18),
    ("19-40", 40),
    ("41-60", 60),
    ("60+", None),
)
TOP_CONDITIONS_LIMIT = 5
UNKNOWN_GENDER = "unknown"
ACTIVE = "active"
RESOLVED = "resolved"


@dataclass(frozen=True)
class NameValue:
    name: str
    value: int


@dataclass(frozen=True)
class AgeGroupCount:
    name: str
    patients: int


@dataclass(frozen=True)
class ConditionCount:
    name: str
    count: int


@dataclass(frozen=True)
class TrendPoint:
    date: str
    count: int


@dataclass(frozen=True)
class Statistics:
    total_patients: int
    total_encounters: int
    active_cases: int
    resolved_cases: int
    gender_data: tuple[NameValue, ...]
    age_group_data: tuple[AgeGroupCount, ...]
    top_conditions: tuple[ConditionCount, ...]
    encounter_trend: tuple[TrendPoint, ...]

    def to_dict(self) -> dict:
        return asdict(self)


def parse_birth_date(value: str | None) -> datetime | None:
    """Parse a FHIR date (``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``) as UTC midnight."""
    if not value:
        return None
    for fmt in ("%Y-%m-%d", "%Y-%m", "%Y"):
        try:
            return datetime.strptime(value[:10], fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def age_in_years(birth_date: str | None, now: datetime | None = None) -> int | None:
    """Whole years elapsed since ``birth_date`` using a 365.25 day year."""
    born = parse_birth_date(birth_date)
    if born is None:
        return None
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    elapsed_ms = (now - born).total_seconds() * 1000
    return math.floor(elapsed_ms / MS_PER_YEAR)


def age_group(age: int) -> str:
    for name, upper in AGE_GROUPS:
        if upper is None or age <= upper:
            return name
    return AGE_GROUPS[-1][0]


def gender_distribution(patients: tuple[Patient, ...]) -> tuple[NameValue, ...]:
    counts = Counter(p.gender or UNKNOWN_GENDER for p in patients)
    return tuple(NameValue(name, value) for name, value in counts.items())


def age_group_distribution(patients: tuple[Patient, ...], now: datetime) -> tuple[AgeGroupCount, ...]:
    counts = {name: 0 for name, _ in AGE_GROUPS}
    for patient in patients:
        age = age_in_years(patient.birth_date, now)
        if age is not None:
            counts[age_group(age)] += 1
    return tuple(AgeGroupCount(name, value) for name, value in counts.items())


def top_conditions(data: ProcessedData, limit: int = TOP_CONDITIONS_LIMIT) -> tuple[ConditionCount, ...]:
    """Most frequent condition names; equal counts keep first-seen order."""
    counts = Counter(
        name for name in (c.code.display_name for c in data.conditions) if name
    )
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return tuple(ConditionCount(name, count) for name, count in ranked[:limit])


def encounter_trend(data: ProcessedData) -> tuple[TrendPoint, ...]:
    """Encounters per calendar date of period start, ascending."""
    counts = Counter(
        start.split("T")[0] for start in (e.start for e in data.encounters) if start
    )
    return tuple(TrendPoint(day, counts[day]) for day in sorted(counts))


def count_by_status(data: ProcessedData, status: str) -> int:
    return sum(1 for c in data.conditions if c.clinical_status_code == status)


def reduce(data: ProcessedData, now: datetime | None = None) -> Statistics:
    """Compute all statistics for ``data``. Ages are relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    return Statistics(
        total_patients=len(data.patients),
        total_encounters=len(data.encounters),
        active_cases=count_by_status(data, ACTIVE),
        resolved_cases=count_by_status(data, RESOLVED),
        gender_data=gender_distribution(data.patients),
        age_group_data=age_group_distribution(data.patients, now),
        top_conditions=top_conditions(data),
        encounter_trend=encounter_trend(data),
    )
