"""Render report results as aligned text tables or delimited values."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Sequence

from .config import ReportFormat
from .models import Composite, Fields, Interval, Intervals, PieSlices, RankedValues, ReportResult

TIMESTAMP_FMT = "%x %X"

_DELIMITERS = {ReportFormat.CSV: ",", ReportFormat.TSV: "\t"}
_FORMAT_NAMES = {
    ReportFormat.CSV: "comma-separated",
    ReportFormat.TSV: "TAB-separated",
}


class UnsupportedFormatError(ValueError):
    """Raised when a report cannot be rendered in the requested format."""

    def __init__(self, title: str, report_format: ReportFormat) -> None:
        super().__init__(
            f'"{title}" not supported for {_FORMAT_NAMES[report_format]} output format'
        )
        self.title = title
        self.report_format = report_format


def _value_rows(rows: Iterable[tuple[str, str, float]]) -> list[list[str]]:
    return [["Tag", "Time", "Percentage"]] + [
        [label, duration, f"{fraction * 100:.2f}"] for label, duration, fraction in rows
    ]


def _interval_rows(intervals: Iterable[Interval]) -> list[list[str]]:
    return [["Tag", "From", "Until", "Duration"]] + [
        [
            interval.label,
            interval.start.strftime(TIMESTAMP_FMT),
            interval.end.strftime(TIMESTAMP_FMT),
            interval.duration,
        ]
        for interval in intervals
    ]


def underline(title: str) -> str:
    return f"{title}\n{'=' * len(title)}\n"


def tabulate(rows: Sequence[Sequence[str]], title_row: bool) -> str:
    """Right-align every column; mark the header row with underscores."""
    if not rows:
        return ""
    widths = [max(len(row[col]) for row in rows) for col in range(len(rows[0]))]
    lines = [" | ".join(cell.rjust(width) for cell, width in zip(row, widths)) for row in rows]
    if title_row:
        lines[0] = lines[0].replace(" ", "_") + "_"
    return "".join(f"{line}\n" for line in lines)


def _table(result: ReportResult) -> list[list[str]]:
    if isinstance(result, (RankedValues, PieSlices)):
        return _value_rows(result.rows)
    if isinstance(result, Intervals):
        return _interval_rows(result.intervals)
    raise TypeError(f"Not a tabular report: {result!r}")


def render_text(result: ReportResult) -> str:
    if isinstance(result, Fields):
        return underline(result.title) + tabulate(
            [[name, value] for name, value in result.fields], title_row=False
        )
    return underline(result.title) + tabulate(_table(result), title_row=True)


def render_delimited(result: ReportResult, report_format: ReportFormat) -> str:
    if isinstance(result, Fields):
        raise UnsupportedFormatError(result.title, report_format)
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=_DELIMITERS[report_format], lineterminator="\n")
    writer.writerows(_table(result))
    return buffer.getvalue()


def render_report(result: ReportResult, report_format: ReportFormat = ReportFormat.TEXT) -> str:
    """Render one result; composite results are separated by blank lines."""
    report_format = ReportFormat(report_format)
    if isinstance(result, Composite):
        return "\n".join(render_report(part, report_format) for part in result.results)
    if report_format is ReportFormat.TEXT:
        return render_text(result)
    return render_delimited(result, report_format)


def render_reports(
    results: Iterable[ReportResult], report_format: ReportFormat = ReportFormat.TEXT
) -> str:
    return "\n".join(render_report(result, report_format) for result in results)
