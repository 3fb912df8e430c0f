"""Command-line interface for timelog statistics."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import ReportFormat, ReportOptions
from .filters import MatcherParseError, parse_activity
from .models import (
    CategoryReport,
    EachCategory,
    GeneralInfos,
    IntervalCategory,
    IntervalTag,
    Report,
    TotalTime,
)
from .paths import get_db_path

app = typer.Typer(help="Summary statistics for sampled activity logs.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_reports(
    *,
    information: bool = False,
    total_time: bool = False,
    categories: Optional[List[str]] = None,
    each_category: bool = False,
    intervals: Optional[List[str]] = None,
    interval_categories: Optional[List[str]] = None,
) -> list[Report]:
    """Collect the requested reports in a fixed order; default to total time."""
    reports: list[Report] = []
    if information:
        reports.append(GeneralInfos())
    if total_time:
        reports.append(TotalTime())
    reports.extend(CategoryReport(category) for category in categories or ())
    if each_category:
        reports.append(EachCategory())
    reports.extend(IntervalTag(parse_activity(tag)) for tag in intervals or ())
    reports.extend(IntervalCategory(category) for category in interval_categories or ())
    return reports or [TotalTime()]


@app.command()
def stats(
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the sample SQLite database (default: $TIMELOG_STATS_DB or the user data dir).",
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="Ignore samples containing this tag or category (Cat:)."
    ),
    only: Optional[List[str]] = typer.Option(
        None, "--only", "-o", help="Only consider samples containing this tag or category."
    ),
    also_inactive: bool = typer.Option(
        False, "--also-inactive", help="Include samples marked as inactive."
    ),
    min_percentage: float = typer.Option(
        1.0,
        "--min-percentage",
        "-m",
        min=0.0,
        help="Do not show tags with a share below this percentage.",
    ),
    output_exclude: Optional[List[str]] = typer.Option(
        None, "--output-exclude", help="Hide this tag or category from the results."
    ),
    output_only: Optional[List[str]] = typer.Option(
        None, "--output-only", help="Only show this tag or category in the results."
    ),
    output_format: ReportFormat = typer.Option(
        ReportFormat.TEXT, "--output-format", case_sensitive=False, help="text, csv or tsv."
    ),
    information: bool = typer.Option(False, "--information", "-i", help="General information."),
    total_time: bool = typer.Option(False, "--total-time", "-t", help="Total time per tag."),
    categories: Optional[List[str]] = typer.Option(
        None, "--category", "-c", help="Statistics for the given category."
    ),
    each_category: bool = typer.Option(
        False, "--each-category", help="Statistics for every category."
    ),
    intervals: Optional[List[str]] = typer.Option(
        None, "--intervals", help="Intervals during which the given tag was active."
    ),
    interval_categories: Optional[List[str]] = typer.Option(
        None, "--intervals-category", help="Intervals of the tags of the given category."
    ),
) -> None:
    """Print statistics for the recorded samples."""
    from .reporting import SummaryPrinter

    try:
        options = ReportOptions.from_arguments(
            exclude=exclude or (),
            only=only or (),
            also_inactive=also_inactive,
            min_percentage=min_percentage,
            output_exclude=output_exclude or (),
            output_only=output_only or (),
            report_format=output_format,
        )
        reports = build_reports(
            information=information,
            total_time=total_time,
            categories=categories,
            each_category=each_category,
            intervals=intervals,
            interval_categories=interval_categories,
        )
    except MatcherParseError as exc:
        raise typer.BadParameter(str(exc)) from exc

    printer = SummaryPrinter(db_path=db_path or get_db_path(), options=options)
    try:
        printer.print_reports(reports)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("import")
def import_samples(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON lines file."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the sample SQLite database (default: $TIMELOG_STATS_DB or the user data dir).",
    ),
) -> None:
    """Load categorized samples from a JSON lines file.

    Timestamps without an offset are read in the record's ``timezone`` (UTC if absent).
    """
    from .db import database_connection, insert_entries, read_samples

    try:
        with database_connection(db_path or get_db_path()) as conn:
            count = insert_entries(conn, read_samples(source))
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Imported {count} samples.")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the sample SQLite database (default: $TIMELOG_STATS_DB or the user data dir)."
    ),
) -> None:
    """Serve the reports over HTTP."""
    from .server_runner import run_server

    run_server(host=host, port=port, db_path=db_path or get_db_path())
