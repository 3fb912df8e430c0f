"""FastAPI application that serves timelog reports as JSON or text."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict

from .calculations import EmptyLogError
from .config import ReportFormat, ReportOptions
from .db import count_entries, database_connection, iter_entries
from .filters import parse_activity
from .models import (
    CategoryReport,
    Composite,
    EachCategory,
    Fields,
    GeneralInfos,
    IntervalCategory,
    Intervals,
    IntervalTag,
    PieSlices,
    RankedValues,
    Report,
    ReportResult,
    TotalTime,
)
from .paths import get_db_path
from .rendering import UnsupportedFormatError, render_reports
from .reporting import summarize

logger = logging.getLogger(__name__)


class ValueRow(BaseModel):
    label: str
    duration: str
    fraction: float


class IntervalRow(BaseModel):
    label: str
    start: str
    end: str
    duration: str


class ReportPayload(BaseModel):
    kind: str
    title: Optional[str] = None
    fields: Optional[Dict[str, str]] = None
    rows: Optional[List[ValueRow]] = None
    intervals: Optional[List[IntervalRow]] = None
    results: Optional[List["ReportPayload"]] = None

    model_config = ConfigDict(extra="forbid")


ReportPayload.model_rebuild()


class ReportsResponse(BaseModel):
    reports: List[ReportPayload]


def parse_report(value: str) -> Report:
    """Parse ``info``, ``total``, ``each-category`` or ``<kind>:<argument>``."""
    kind, _, argument = value.partition(":")
    if kind == "info" and not argument:
        return GeneralInfos()
    if kind == "total" and not argument:
        return TotalTime()
    if kind == "each-category" and not argument:
        return EachCategory()
    if kind == "category" and argument:
        return CategoryReport(argument)
    if kind == "intervals-category" and argument:
        return IntervalCategory(argument)
    if kind == "intervals" and argument:
        return IntervalTag(parse_activity(argument))
    raise ValueError(f"Unknown report: {value!r}")


def result_payload(result: ReportResult) -> ReportPayload:
    if isinstance(result, Fields):
        return ReportPayload(kind="fields", title=result.title, fields=dict(result.fields))
    if isinstance(result, (RankedValues, PieSlices)):
        return ReportPayload(
            kind="ranked" if isinstance(result, RankedValues) else "pie",
            title=result.title,
            rows=[
                ValueRow(label=label, duration=duration, fraction=fraction)
                for label, duration, fraction in result.rows
            ],
        )
    if isinstance(result, Intervals):
        return ReportPayload(
            kind="intervals",
            title=result.title,
            intervals=[
                IntervalRow(
                    label=interval.label,
                    start=interval.start.isoformat(),
                    end=interval.end.isoformat(),
                    duration=interval.duration,
                )
                for interval in result.intervals
            ],
        )
    if isinstance(result, Composite):
        return ReportPayload(
            kind="composite", results=[result_payload(part) for part in result.results]
        )
    raise TypeError(f"Unknown report result: {result!r}")


def create_app(*, db_path: Optional[Path] = None) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())

    app = FastAPI(title="Timelog Stats", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        with database_connection(request.app.state.db_path) as conn:
            samples = count_entries(conn)
        return {
            "database_path": str(request.app.state.db_path),
            "samples": samples,
        }

    @app.get("/api/reports", response_model=None)
    def reports(
        request: Request,
        report: List[str] = Query(default=["total"], description="Reports to compute."),
        exclude: List[str] = Query(default=[]),
        only: List[str] = Query(default=[]),
        also_inactive: bool = Query(default=False),
        min_percentage: float = Query(default=1.0, ge=0.0),
        output_exclude: List[str] = Query(default=[]),
        output_only: List[str] = Query(default=[]),
        output_format: str = Query(
            default="json", alias="format", pattern="^(json|text|csv|tsv)$"
        ),
    ):
        try:
            options = ReportOptions.from_arguments(
                exclude=exclude,
                only=only,
                also_inactive=also_inactive,
                min_percentage=min_percentage,
                output_exclude=output_exclude,
                output_only=output_only,
                report_format=ReportFormat.TEXT if output_format == "json" else output_format,
            )
            requested = [parse_report(value) for value in report]
        except ValueError as exc:
            logger.warning("Rejected report request: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        with database_connection(request.app.state.db_path) as conn:
            try:
                results = summarize(iter_entries(conn), options, requested)
            except EmptyLogError as exc:
                logger.warning("Rejected report request: %s", exc)
                raise HTTPException(status_code=400, detail=str(exc)) from exc

        if output_format == "json":
            return ReportsResponse(reports=[result_payload(result) for result in results])
        try:
            text = render_reports(results, options.report_format)
        except UnsupportedFormatError as exc:
            logger.warning("Rejected report rendering: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return PlainTextResponse(text)

    return app
