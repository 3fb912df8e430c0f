"""Domain models for sampled activity logs and the reports computed from them."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")

Category = str


@dataclass(frozen=True, slots=True)
class Activity:
    """A named tag, optionally assigned to one category."""

    name: str
    category: Optional[Category] = None

    @property
    def sort_key(self) -> tuple[bool, str, str]:
        # uncategorized activities sort before categorized ones
        return self.category is not None, self.category or "", self.name

    def __str__(self) -> str:
        if self.category is None:
            return self.name
        return f"{self.category}:{self.name}"


INACTIVE = Activity("inactive")


@dataclass(frozen=True, slots=True)
class Context:
    """Per-sample context handed to condition evaluators."""

    timezone: tzinfo = timezone.utc


@dataclass(frozen=True, slots=True)
class EntryData:
    context: Context = field(default_factory=Context)
    activities: tuple[Activity, ...] = ()


@dataclass(frozen=True, slots=True)
class Entry(Generic[T]):
    """One sample, standing for the interval ``[timestamp, timestamp + rate)``."""

    timestamp: datetime
    rate: int
    data: T

    @property
    def duration(self) -> timedelta:
        return timedelta(milliseconds=self.rate)

    def with_data(self, data: U) -> "Entry[U]":
        return replace(self, data=data)  # type: ignore[return-value]


SelectedEntry = tuple[bool, Entry[EntryData]]


@dataclass(frozen=True, slots=True)
class MatchActivity:
    activity: Activity

    def __str__(self) -> str:
        return str(self.activity)


@dataclass(frozen=True, slots=True)
class MatchCategory:
    category: Category

    def __str__(self) -> str:
        return f"{self.category}:"


ActivityMatcher = Union[MatchActivity, MatchCategory]


@dataclass(frozen=True, slots=True)
class Exclude:
    matcher: ActivityMatcher


@dataclass(frozen=True, slots=True)
class Only:
    matcher: ActivityMatcher


@dataclass(frozen=True, slots=True)
class GeneralCondition:
    expression: str


Filter = Union[Exclude, Only, GeneralCondition]


@dataclass(frozen=True, slots=True)
class ExcludeActivity:
    matcher: ActivityMatcher


@dataclass(frozen=True, slots=True)
class OnlyActivity:
    matcher: ActivityMatcher


ActivityFilter = Union[ExcludeActivity, OnlyActivity]


@dataclass(frozen=True, slots=True)
class GeneralInfos:
    pass


@dataclass(frozen=True, slots=True)
class TotalTime:
    pass


@dataclass(frozen=True, slots=True)
class CategoryReport:
    category: Category


@dataclass(frozen=True, slots=True)
class EachCategory:
    pass


@dataclass(frozen=True, slots=True)
class IntervalCategory:
    category: Category


@dataclass(frozen=True, slots=True)
class IntervalTag:
    activity: Activity


Report = Union[GeneralInfos, TotalTime, CategoryReport, EachCategory, IntervalCategory, IntervalTag]


@dataclass(frozen=True, slots=True)
class Interval:
    """A span over which an extracted label stayed the same."""

    label: str
    start: datetime
    end: datetime
    duration: str


@dataclass(frozen=True, slots=True)
class Fields:
    title: str
    fields: list[tuple[str, str]]


@dataclass(frozen=True, slots=True)
class RankedValues:
    title: str
    rows: list[tuple[str, str, float]]


@dataclass(frozen=True, slots=True)
class PieSlices:
    title: str
    rows: list[tuple[str, str, float]]


@dataclass(frozen=True, slots=True)
class Intervals:
    title: str
    intervals: list[Interval]


@dataclass(frozen=True, slots=True)
class Composite:
    results: list["ReportResult"]


ReportResult = Union[Fields, RankedValues, PieSlices, Intervals, Composite]
