"""
Unit tests for the report processors.

Exercises threshold handling, category breakdowns, interval detection and the
single-pass driver.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import BASE_TIME, CountingIterable
from timelog_stats.calculations import Calculations, EmptyLogError
from timelog_stats.config import ReportOptions
from timelog_stats.models import (
    INACTIVE,
    Activity,
    CategoryReport,
    Composite,
    EachCategory,
    ExcludeActivity,
    Fields,
    GeneralCondition,
    GeneralInfos,
    Interval,
    IntervalCategory,
    Intervals,
    IntervalTag,
    MatchActivity,
    MatchCategory,
    OnlyActivity,
    PieSlices,
    RankedValues,
    TotalTime,
)
from timelog_stats.reporting import (
    category_report,
    format_duration,
    format_timestamp,
    intervals_from_extractor,
    summarize,
    total_time_report,
)

CODE = Activity("code", "Work")
MAIL = Activity("mail", "Work")
GAME = Activity("game", "Play")


def make_calculations(total_selected, sums):
    return Calculations.from_base(
        BASE_TIME,
        BASE_TIME + total_selected,
        total_selected,
        total_selected,
        sums,
    )


class TestFormatting:
    """Test cases for duration and timestamp formatting."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0s"),
            (0.4, "0s"),
            (59, "59s"),
            (60, " 1m00s"),
            (1800, "30m00s"),
            (3661, " 1h01m01s"),
            (90061, " 1d01h01m01s"),
            (86400, " 1d00h00m00s"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(timedelta(seconds=seconds)) == expected

    def test_format_timestamp(self):
        assert format_timestamp(BASE_TIME) == "2024-01-01 09:00:00 UTC"
        assert format_timestamp(datetime(2024, 1, 1, 9, 0)) == "2024-01-01 09:00:00"


class TestTotalTime:
    """Test cases for the total time report."""

    def test_threshold_drops_small_rows(self):
        calc = make_calculations(
            timedelta(minutes=100),
            {
                CODE: timedelta(minutes=90),
                MAIL: timedelta(minutes=9, seconds=30),
                GAME: timedelta(seconds=30),
            },
        )
        result = total_time_report(ReportOptions(), calc)
        assert result.title == "Total time per tag"
        assert [row[0] for row in result.rows] == ["Work:code", "Work:mail"]
        assert all(fraction * 100 >= 1.0 for _, _, fraction in result.rows)

    def test_activity_filter_hides_rows(self):
        calc = make_calculations(
            timedelta(minutes=10), {CODE: timedelta(minutes=6), GAME: timedelta(minutes=4)}
        )
        options = ReportOptions(activity_filters=(ExcludeActivity(MatchActivity(CODE)),))
        result = total_time_report(options, calc)
        assert result.rows == [("Play:game", " 4m00s", pytest.approx(0.4))]

    def test_rows_sorted_by_duration(self):
        calc = make_calculations(
            timedelta(minutes=10),
            {GAME: timedelta(minutes=2), CODE: timedelta(minutes=5), MAIL: timedelta(minutes=3)},
        )
        result = total_time_report(ReportOptions(), calc)
        assert [row[0] for row in result.rows] == ["Work:code", "Work:mail", "Play:game"]

    def test_nothing_selected(self):
        calc = make_calculations(timedelta(0), {})
        assert total_time_report(ReportOptions(), calc).rows == []

    def test_end_to_end_two_half_hours(self, make_entry):
        work, rest = Activity("Work"), Activity("Break")
        entries = [make_entry(0, work, rate=1_800_000), make_entry(30, rest, rate=1_800_000)]
        [result] = summarize(entries, ReportOptions(min_percentage=1.0), [TotalTime()])
        assert isinstance(result, RankedValues)
        assert sorted(result.rows) == [("Break", "30m00s", 0.5), ("Work", "30m00s", 0.5)]


class TestCategoryReport:
    """Test cases for per-category breakdowns."""

    def calculations(self):
        return make_calculations(
            timedelta(minutes=100),
            {
                CODE: timedelta(minutes=60),
                MAIL: timedelta(seconds=30),
                GAME: timedelta(minutes=30),
            },
        )

    def test_rows_with_omitted_and_unmatched_time(self):
        result = category_report(ReportOptions(), self.calculations(), "Work")
        assert isinstance(result, PieSlices)
        assert result.title == "Statistics for category Work"
        assert result.rows == [
            ("Work:code", " 1h00m00s", pytest.approx(0.6)),
            ("(1 entries omitted)", "30s", pytest.approx(0.005)),
            ("(unmatched time)", "39m30s", pytest.approx(0.395)),
        ]

    def test_selected_time_is_conserved(self):
        calc = self.calculations()
        result = category_report(ReportOptions(min_percentage=0), calc, "Work")
        fractions = {label: fraction for label, _, fraction in result.rows}
        unmatched = fractions.pop("(unmatched time)")
        assert set(fractions) == {"Work:code", "Work:mail"}

        sums = {str(activity): time for activity, time in calc.sums.items()}
        listed = sum((sums[label] for label in fractions), timedelta())
        assert listed / calc.total_time_sel + unmatched == pytest.approx(1.0)
        assert sum(fractions.values()) + unmatched == pytest.approx(1.0)

    def test_no_synthetic_rows_when_fully_covered(self):
        calc = make_calculations(timedelta(minutes=10), {GAME: timedelta(minutes=10)})
        result = category_report(ReportOptions(), calc, "Play")
        assert result.rows == [("Play:game", "10m00s", 1.0)]

    def test_activity_filter_applies_only_to_rows(self):
        options = ReportOptions(activity_filters=(OnlyActivity(MatchCategory("Play")),))
        result = category_report(options, self.calculations(), "Work")
        assert [row[0] for row in result.rows] == ["(1 entries omitted)", "(unmatched time)"]

    def test_each_category(self, sample_entries):
        [result] = summarize(sample_entries, ReportOptions(), [EachCategory()])
        assert isinstance(result, Composite)
        assert [part.title for part in result.results] == [
            "Statistics for category Play",
            "Statistics for category Work",
        ]

    def test_each_category_ignores_unselected_entries(self, make_entry):
        hidden = Activity("hidden", "Secret")
        entries = [make_entry(0, CODE), make_entry(1, INACTIVE, hidden)]
        [result] = summarize(entries, ReportOptions(), [EachCategory()])
        assert [part.title for part in result.results] == ["Statistics for category Work"]

    def test_category_report_via_summarize(self, sample_entries):
        [result] = summarize(sample_entries, ReportOptions(), [CategoryReport("Play")])
        assert result.rows == [
            ("Play:game", " 2m00s", pytest.approx(0.4)),
            ("(unmatched time)", " 3m00s", pytest.approx(0.6)),
        ]


class TestIntervals:
    """Test cases for contiguous interval detection."""

    def test_runs_of_equal_labels(self, make_entry):
        x, y = Activity("X"), Activity("Y")
        entries = [make_entry(0, x), make_entry(1, x), make_entry(2, y)]
        fold = intervals_from_extractor(
            lambda data: data.activities[0].name if data.activities else None
        )
        intervals = fold.run((True, entry) for entry in entries)
        assert intervals == [
            Interval("X", entries[0].timestamp, entries[1].timestamp, " 2m00s"),
            Interval("Y", entries[2].timestamp, entries[2].timestamp, " 1m00s"),
        ]

    def test_unlabelled_runs_are_dropped(self, make_entry):
        fold = intervals_from_extractor(lambda data: "on" if data.activities else None)
        entries = [make_entry(0), make_entry(1, CODE), make_entry(2), make_entry(3, CODE)]
        intervals = fold.run((True, entry) for entry in entries)
        assert [(i.label, i.start) for i in intervals] == [
            ("on", entries[1].timestamp),
            ("on", entries[3].timestamp),
        ]

    def test_duration_uses_last_sample_rate(self, make_entry):
        entries = [make_entry(0, CODE, rate=60_000), make_entry(1, CODE, rate=120_000)]
        fold = intervals_from_extractor(lambda data: "x")
        [interval] = fold.run((True, entry) for entry in entries)
        assert interval.duration == " 3m00s"

    def test_interval_category(self, make_entry):
        entries = [
            make_entry(0, CODE),
            make_entry(1, GAME, CODE),
            make_entry(2, GAME),
            make_entry(3, MAIL),
        ]
        [result] = summarize(entries, ReportOptions(), [IntervalCategory("Work")])
        assert isinstance(result, Intervals)
        assert result.title == "Intervals for category Work"
        assert [(i.label, i.start, i.end, i.duration) for i in result.intervals] == [
            ("code", entries[0].timestamp, entries[1].timestamp, " 2m00s"),
            ("mail", entries[3].timestamp, entries[3].timestamp, " 1m00s"),
        ]

    def test_interval_tag(self, sample_entries):
        [result] = summarize(sample_entries, ReportOptions(), [IntervalTag(CODE)])
        assert result.title == "Intervals for category Work:code"
        assert [(i.label, i.duration) for i in result.intervals] == [
            ("Work:code", " 2m00s"),
            ("Work:code", " 1m00s"),
        ]

    def test_unselected_entry_splits_interval(self, make_entry):
        entries = [make_entry(0, CODE), make_entry(1, CODE, INACTIVE), make_entry(2, CODE)]
        [result] = summarize(entries, ReportOptions(), [IntervalTag(CODE)])
        assert [(i.start, i.duration) for i in result.intervals] == [
            (entries[0].timestamp, " 1m00s"),
            (entries[2].timestamp, " 1m00s"),
        ]


class TestSummarize:
    """Test cases for the single-pass driver."""

    def test_general_infos(self, make_entry):
        entries = [make_entry(0, CODE, rate=1_800_000), make_entry(30, GAME, rate=1_800_000)]
        [result] = summarize(entries, ReportOptions(), [GeneralInfos()])
        assert isinstance(result, Fields)
        assert result.title == "General Information"
        assert result.fields == [
            ("FirstRecord", "2024-01-01 09:00:00 UTC"),
            ("LastRecord", "2024-01-01 09:30:00 UTC"),
            ("Number of records", "2"),
            ("Total time recorded", " 1h00m00s"),
            ("Total time selected", " 1h00m00s"),
            ("Fraction of total time recorded", "200%"),
            ("Fraction of total time selected", "200%"),
            ("Fraction of recorded time selected", "100%"),
        ]

    @pytest.mark.parametrize(
        "category, expected",
        [
            ("Work", {"Work:code": 0.6, "Work:mail": 0.2, "(unmatched time)": 0.2}),
            ("Play", {"Play:game": 0.4, "(unmatched time)": 0.6}),
        ],
    )
    def test_category_rows_cover_selected_time(self, sample_entries, category, expected):
        """A sample tagged in two categories counts once in each breakdown."""
        [result] = summarize(
            sample_entries, ReportOptions(min_percentage=0), [CategoryReport(category)]
        )
        fractions = {label: fraction for label, _, fraction in result.rows}
        assert fractions == pytest.approx(expected)
        assert sum(fractions.values()) == pytest.approx(1.0)

    def test_all_reports_share_one_pass(self, sample_entries):
        data = CountingIterable(sample_entries)
        reports = [
            GeneralInfos(),
            TotalTime(),
            CategoryReport("Work"),
            EachCategory(),
            IntervalCategory("Work"),
            IntervalTag(GAME),
        ]
        results = summarize(data, ReportOptions(), reports)
        assert data.iterations == 1
        assert [type(result) for result in results] == [
            Fields,
            RankedValues,
            PieSlices,
            Composite,
            Intervals,
            Intervals,
        ]

    def test_empty_log(self):
        with pytest.raises(EmptyLogError):
            summarize([], ReportOptions(), [TotalTime()])

    def test_condition_filter(self, sample_entries):
        def before_three(expression, tz, entry):
            assert tz is timezone.utc
            return entry.timestamp < BASE_TIME + timedelta(minutes=int(expression))

        options = ReportOptions(filters=(GeneralCondition("3"),))
        [result] = summarize(sample_entries, options, [TotalTime()], before_three)
        assert [row[0] for row in result.rows] == ["Work:code", "Work:mail"]
        assert result.rows[0][2] == pytest.approx(2 / 3)
