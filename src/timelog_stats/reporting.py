"""Report processors built on the fold algebra."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from .calculations import Calculations, prepare_calculations, ratio
from .config import ReportOptions
from .db import database_connection, iter_entries
from .filters import ConditionEvaluator, apply_activity_filter, is_category, selection_predicate
from .folds import (
    Fold,
    first,
    flatten_concat,
    group_contiguous,
    last,
    length,
    lift,
    map_input,
    on_all,
    on_selected,
    only_present,
    pure,
    run_on_selected_runs,
    sequence,
    to_list,
)
from .models import (
    Activity,
    Category,
    CategoryReport,
    Composite,
    EachCategory,
    Entry,
    EntryData,
    Fields,
    GeneralInfos,
    Interval,
    IntervalCategory,
    Intervals,
    IntervalTag,
    PieSlices,
    RankedValues,
    Report,
    ReportResult,
    SelectedEntry,
    TotalTime,
)
from .rendering import render_reports

logger = logging.getLogger(__name__)

DeferredResult = Callable[[Calculations], ReportResult]
LabelExtractor = Callable[[EntryData], Optional[str]]


def format_duration(duration: timedelta) -> str:
    """Render as ``1d02h03m04s``, dropping leading zero units."""
    total_seconds = round(duration.total_seconds())
    days, remainder = divmod(total_seconds, 24 * 60 * 60)
    hours, remainder = divmod(remainder, 60 * 60)
    minutes, secs = divmod(remainder, 60)
    parts: list[str] = []
    for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s")):
        if parts:
            parts.append(f"{value:02d}{unit}")
        elif value > 0:
            parts.append(f"{value:2d}{unit}")
    return "".join(parts) or "0s"


def format_timestamp(value: datetime) -> str:
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    zone = value.tzname()
    return f"{text} {zone}" if zone else text


def _ranked_rows(
    options: ReportOptions,
    sums: dict[Activity, timedelta],
    total_selected: timedelta,
) -> list[tuple[str, str, float]]:
    rows: list[tuple[str, str, float]] = []
    ordered = sorted(sums.items(), key=lambda item: (item[1], item[0].sort_key), reverse=True)
    for activity, duration in ordered:
        fraction = ratio(duration, total_selected)
        if not apply_activity_filter(options.activity_filters, activity):
            continue
        if fraction * 100 < options.min_percentage:
            continue
        rows.append((str(activity), format_duration(duration), fraction))
    return rows


def general_infos(count: int, calc: Calculations) -> Fields:
    return Fields(
        "General Information",
        [
            ("FirstRecord", format_timestamp(calc.first_date)),
            ("LastRecord", format_timestamp(calc.last_date)),
            ("Number of records", str(count)),
            ("Total time recorded", format_duration(calc.total_time_rec)),
            ("Total time selected", format_duration(calc.total_time_sel)),
            ("Fraction of total time recorded", f"{calc.fraction_rec * 100:3.0f}%"),
            ("Fraction of total time selected", f"{calc.fraction_sel * 100:3.0f}%"),
            ("Fraction of recorded time selected", f"{calc.fraction_sel_rec * 100:3.0f}%"),
        ],
    )


def total_time_report(options: ReportOptions, calc: Calculations) -> RankedValues:
    return RankedValues("Total time per tag", _ranked_rows(options, calc.sums, calc.total_time_sel))


def category_report(options: ReportOptions, calc: Calculations, category: Category) -> PieSlices:
    """Share of the selected time per activity of ``category``.

    Activities below the threshold are folded into one omitted row, and the
    selected time not attributed to the category becomes ``(unmatched time)``.
    """
    total_selected = calc.total_time_sel
    filtered = {act: t for act, t in calc.sums.items() if is_category(category, act)}
    uncategorized = total_selected - sum(filtered.values(), timedelta())
    too_small = {
        act: t
        for act, t in filtered.items()
        if ratio(t, total_selected) * 100 < options.min_percentage
    }
    too_small_total = sum(too_small.values(), timedelta())

    rows = _ranked_rows(options, filtered, total_selected)
    if too_small_total > timedelta():
        rows.append(
            (
                f"({len(too_small)} entries omitted)",
                format_duration(too_small_total),
                ratio(too_small_total, total_selected),
            )
        )
    if uncategorized > timedelta():
        rows.append(
            (
                "(unmatched time)",
                format_duration(uncategorized),
                ratio(uncategorized, total_selected),
            )
        )
    return PieSlices(f"Statistics for category {category}", rows)


def _add_categories(found: set[Category], entry: Entry[EntryData]) -> set[Category]:
    found.update(act.category for act in entry.data.activities if act.category is not None)
    return found


def categories() -> Fold[Entry[EntryData], list[Category]]:
    return Fold(set, _add_categories, sorted)


def _group_interval(
    first_entry: Entry[Optional[str]], last_entry: Entry[Optional[str]]
) -> Optional[Interval]:
    label = first_entry.data
    if label is None:
        return None
    duration = last_entry.timestamp - first_entry.timestamp + last_entry.duration
    return Interval(label, first_entry.timestamp, last_entry.timestamp, format_duration(duration))


def _label(entry: Entry[Optional[str]]) -> Optional[str]:
    return entry.data


def intervals_from_extractor(extract: LabelExtractor) -> Fold[SelectedEntry, list[Interval]]:
    """Contiguous spans of selected entries sharing the same extracted label.

    Runs without a label produce no interval; an unselected entry always ends
    the current span.
    """
    per_group = lift(_group_interval, first(), last())
    per_run = map_input(
        group_contiguous(_label, per_group, only_present(to_list())),
        lambda entry: entry.with_data(extract(entry.data)),
    )
    return run_on_selected_runs(per_run, flatten_concat())


def category_label(category: Category) -> LabelExtractor:
    def extract(data: EntryData) -> Optional[str]:
        return next((act.name for act in data.activities if act.category == category), None)

    return extract


def tag_label(activity: Activity) -> LabelExtractor:
    def extract(data: EntryData) -> Optional[str]:
        return str(activity) if activity in data.activities else None

    return extract


def _intervals_report(title: str, extract: LabelExtractor) -> Fold[SelectedEntry, DeferredResult]:
    return intervals_from_extractor(extract).map(
        lambda intervals: lambda _calc: Intervals(title, intervals)
    )


def process_report(options: ReportOptions, report: Report) -> Fold[SelectedEntry, DeferredResult]:
    """The fold for one report.

    Its result still needs the :class:`Calculations` of the same pass, so it
    is a function from those to the final :data:`ReportResult`.
    """
    if isinstance(report, GeneralInfos):
        return on_all(length()).map(lambda count: partial(general_infos, count))
    if isinstance(report, TotalTime):
        return pure(partial(total_time_report, options))
    if isinstance(report, CategoryReport):
        return pure(lambda calc: category_report(options, calc, report.category))
    if isinstance(report, EachCategory):
        return on_selected(categories()).map(
            lambda found: lambda calc: Composite(
                [category_report(options, calc, category) for category in found]
            )
        )
    if isinstance(report, IntervalCategory):
        return _intervals_report(
            f"Intervals for category {report.category}", category_label(report.category)
        )
    if isinstance(report, IntervalTag):
        # historical title, kept for output compatibility
        return _intervals_report(
            f"Intervals for category {report.activity}", tag_label(report.activity)
        )
    raise TypeError(f"Unknown report: {report!r}")


def process_reports(
    options: ReportOptions, reports: Sequence[Report]
) -> Fold[SelectedEntry, list[ReportResult]]:
    """Combine the summary figures and every report into one fold."""

    def finish(count: int, calc: Calculations, deferred: list[DeferredResult]) -> list[ReportResult]:
        logger.debug("Summarized %d entries", count)
        return [result(calc) for result in deferred]

    return lift(
        finish,
        on_all(length()),
        prepare_calculations(),
        sequence([process_report(options, report) for report in reports]),
    )


def summarize(
    entries: Iterable[Entry[EntryData]],
    options: ReportOptions,
    reports: Sequence[Report],
    evaluate_condition: Optional[ConditionEvaluator] = None,
) -> list[ReportResult]:
    """Compute ``reports`` with a single pass over ``entries``.

    Raises :class:`~timelog_stats.calculations.EmptyLogError` when there are
    no entries.
    """
    logger.info("Computing reports: %s", ", ".join(type(report).__name__ for report in reports))
    is_selected = selection_predicate(options.filters, evaluate_condition)
    pairs = ((is_selected(entry), entry) for entry in entries)
    return process_reports(options, reports).run(pairs)


class SummaryPrinter:
    """Render reports for a sample database in the console."""

    def __init__(self, db_path: Path, options: Optional[ReportOptions] = None) -> None:
        self.db_path = Path(db_path)
        self.options = options or ReportOptions()

    def render(self, reports: Sequence[Report]) -> str:
        with database_connection(self.db_path) as conn:
            results = summarize(iter_entries(conn), self.options, reports)
        return render_reports(results, self.options.report_format)

    def print_reports(self, reports: Sequence[Report]) -> None:
        print(self.render(reports), end="")
