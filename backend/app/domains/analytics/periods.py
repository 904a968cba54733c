"""Month-granular date ranges and comparison period derivation."""
import calendar
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Literal

MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]

RangePart = Literal["start", "end"]


@dataclass(frozen=True, order=True)
class MonthYear:
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")

    @classmethod
    def from_date(cls, value: date) -> "MonthYear":
        return cls(value.year, value.month)

    @property
    def index(self) -> int:
        """Months since year 0, for arithmetic."""
        return self.year * 12 + (self.month - 1)

    @classmethod
    def from_index(cls, index: int) -> "MonthYear":
        return cls(index // 12, index % 12 + 1)

    def shift(self, months: int) -> "MonthYear":
        return MonthYear.from_index(self.index + months)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def parse_month(value: str) -> MonthYear:
    """Parse ``YYYY-MM``."""
    try:
        year_str, month_str = value.strip().split("-")
        return MonthYear(int(year_str), int(month_str))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid month '{value}', expected YYYY-MM") from e


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar months."""
    start: MonthYear
    end: MonthYear

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} precedes start {self.start}")

    @classmethod
    def parse(cls, start: str, end: str) -> "DateRange":
        return cls(parse_month(start), parse_month(end))

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


def month_span(range_: DateRange) -> int:
    """Number of calendar months covered, inclusive (Jan-Mar is 3)."""
    return range_.end.index - range_.start.index + 1


def to_date_interval(range_: DateRange) -> tuple[date, date]:
    """First day of the start month through the last day of the end month."""
    return range_.start.first_day, range_.end.last_day


def derive_previous_period(range_: DateRange) -> DateRange:
    """The range of equal month span ending the day before ``range_`` starts."""
    previous_end_day = range_.start.first_day - timedelta(days=1)
    end = MonthYear.from_date(previous_end_day)
    start = end.shift(-(month_span(range_) - 1))
    return DateRange(start, end)


def apply_edit(
    range_: DateRange,
    part: RangePart,
    year: int | None = None,
    month: int | None = None,
) -> DateRange:
    """
    Change one boundary of a range.

    The edited boundary always wins: if the edit would leave end before start,
    the other boundary snaps to it and the range collapses to one month.
    """
    current = range_.start if part == "start" else range_.end
    edited = replace(
        current,
        year=year if year is not None else current.year,
        month=month if month is not None else current.month,
    )

    if part == "start":
        return DateRange(edited, edited if range_.end < edited else range_.end)
    if part == "end":
        return DateRange(edited if edited < range_.start else range_.start, edited)
    raise ValueError(f"Unknown range part: {part}")


def describe(range_: DateRange) -> str:
    """Human readable label, e.g. ``Jan 2024 to Mar 2024``."""
    start, end = range_.start, range_.end
    return (
        f"{MONTH_ABBREVIATIONS[start.month - 1]} {start.year} to "
        f"{MONTH_ABBREVIATIONS[end.month - 1]} {end.year}"
    )


def default_range(today: date | None = None) -> DateRange:
    """The three months ending with the current month."""
    end = MonthYear.from_date(today or date.today())
    return DateRange(end.shift(-2), end)
