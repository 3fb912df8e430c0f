"""Summary figures shared by all reports, computed in one pass over the log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .folds import Fold, first, last, lift, map_input, on_all, on_selected
from .models import Activity, Entry, EntryData, SelectedEntry


class EmptyLogError(ValueError):
    """Raised when a summary is requested for a log without entries."""

    def __init__(self) -> None:
        super().__init__("no entries to summarize")


def ratio(numerator: timedelta, denominator: timedelta) -> float:
    """``numerator / denominator``, or ``0.0`` when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True, slots=True)
class Calculations:
    first_date: datetime
    last_date: datetime
    time_diff: timedelta
    total_time_rec: timedelta
    total_time_sel: timedelta
    fraction_rec: float
    fraction_sel: float
    fraction_sel_rec: float
    sums: dict[Activity, timedelta]

    @classmethod
    def from_base(
        cls,
        first_date: Optional[datetime],
        last_date: Optional[datetime],
        total_time_rec: timedelta,
        total_time_sel: timedelta,
        sums: dict[Activity, timedelta],
    ) -> "Calculations":
        """Derive the ratios once the single pass has produced the base fields."""
        if first_date is None or last_date is None:
            raise EmptyLogError()
        time_diff = last_date - first_date
        return cls(
            first_date=first_date,
            last_date=last_date,
            time_diff=time_diff,
            total_time_rec=total_time_rec,
            total_time_sel=total_time_sel,
            fraction_rec=ratio(total_time_rec, time_diff),
            fraction_sel=ratio(total_time_sel, time_diff),
            fraction_sel_rec=ratio(total_time_sel, total_time_rec),
            sums=sums,
        )


def _timestamp(entry: Entry[EntryData]) -> datetime:
    return entry.timestamp


def total_time() -> Fold[Entry[EntryData], timedelta]:
    return Fold(timedelta, lambda total, entry: total + entry.duration)


def _add_activity_durations(
    sums: dict[Activity, timedelta], entry: Entry[EntryData]
) -> dict[Activity, timedelta]:
    duration = entry.duration
    for activity in entry.data.activities:
        sums[activity] = sums.get(activity, timedelta()) + duration
    return sums


def activity_sums() -> Fold[Entry[EntryData], dict[Activity, timedelta]]:
    """Every activity of an entry is credited with the entry's full duration."""
    return Fold(dict, _add_activity_durations)


def prepare_calculations() -> Fold[SelectedEntry, Calculations]:
    return lift(
        Calculations.from_base,
        on_all(map_input(first(), _timestamp)),
        on_all(map_input(last(), _timestamp)),
        on_all(total_time()),
        on_selected(total_time()),
        on_selected(activity_sums()),
    )
