"""Configuration models and helpers for report generation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .filters import default_filter, parse_matcher
from .models import ActivityFilter, Exclude, ExcludeActivity, Filter, Only, OnlyActivity


class ReportFormat(str, Enum):
    TEXT = "text"
    CSV = "csv"
    TSV = "tsv"


@dataclass(slots=True)
class ReportOptions:
    """Options shared by every report of one run."""

    min_percentage: float = 1.0
    report_format: ReportFormat = ReportFormat.TEXT
    activity_filters: tuple[ActivityFilter, ...] = ()
    filters: tuple[Filter, ...] = (default_filter,)

    @classmethod
    def from_arguments(
        cls,
        *,
        exclude: Iterable[str] = (),
        only: Iterable[str] = (),
        also_inactive: bool = False,
        min_percentage: float = 1.0,
        output_exclude: Iterable[str] = (),
        output_only: Iterable[str] = (),
        report_format: ReportFormat | str = ReportFormat.TEXT,
    ) -> "ReportOptions":
        """Build options from raw matcher strings.

        Raises :class:`~timelog_stats.filters.MatcherParseError` for a
        malformed matcher.
        """
        filters: list[Filter] = [] if also_inactive else [default_filter]
        filters.extend(Exclude(parse_matcher(text)) for text in exclude)
        filters.extend(Only(parse_matcher(text)) for text in only)
        activity_filters: list[ActivityFilter] = [
            ExcludeActivity(parse_matcher(text)) for text in output_exclude
        ]
        activity_filters.extend(OnlyActivity(parse_matcher(text)) for text in output_only)
        return cls(
            min_percentage=min_percentage,
            report_format=ReportFormat(report_format),
            activity_filters=tuple(activity_filters),
            filters=tuple(filters),
        )
