"""SQLite storage for categorized activity samples."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone, tzinfo
from itertools import groupby
from pathlib import Path
from typing import Any, Iterable, Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .filters import parse_activity
from .models import Activity, Context, Entry, EntryData

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS samples (
            id INTEGER PRIMARY KEY,
            timestamp TEXT NOT NULL,
            rate INTEGER NOT NULL,
            timezone TEXT NOT NULL DEFAULT 'UTC'
        );

        CREATE TABLE IF NOT EXISTS sample_activities (
            sample_id INTEGER NOT NULL REFERENCES samples(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            category TEXT,
            name TEXT NOT NULL,
            PRIMARY KEY (sample_id, position)
        );

        CREATE INDEX IF NOT EXISTS idx_samples_timestamp
            ON samples(timestamp);
        """
    )


def _timezone_name(tz: tzinfo) -> str:
    """IANA key for zoneinfo zones, ``+HH:MM`` or ``-HH:MM`` for fixed offsets."""
    key = getattr(tz, "key", None)
    if key:
        return key
    offset = tz.utcoffset(None)
    if offset is None:
        raise ValueError(f"Cannot store time zone without a fixed offset: {tz!r}")
    sign = "-" if offset < timedelta(0) else "+"
    hours, minutes = divmod(abs(offset) // timedelta(minutes=1), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def _load_timezone(name: str) -> tzinfo:
    if name[:1] in ("+", "-"):
        hours, _, minutes = name[1:].partition(":")
        offset = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-offset if name[0] == "-" else offset)
    return ZoneInfo(name)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def insert_entries(conn: sqlite3.Connection, entries: Iterable[Entry[EntryData]]) -> int:
    """Store ``entries`` and return how many were written."""
    count = 0
    conn.execute("BEGIN")
    try:
        for entry in entries:
            cur = conn.execute(
                "INSERT INTO samples (timestamp, rate, timezone) VALUES (?, ?, ?)",
                (
                    _to_utc(entry.timestamp).strftime(DATETIME_FMT),
                    entry.rate,
                    _timezone_name(entry.data.context.timezone),
                ),
            )
            conn.executemany(
                """
                INSERT INTO sample_activities (sample_id, position, category, name)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (cur.lastrowid, position, activity.category, activity.name)
                    for position, activity in enumerate(entry.data.activities)
                ],
            )
            count += 1
    except Exception:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
    logger.info("Stored %d samples", count)
    return count


def count_entries(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM samples").fetchone()[0]


def iter_entries(conn: sqlite3.Connection) -> Iterator[Entry[EntryData]]:
    """Yield all samples in chronological order, one at a time."""
    cursor = conn.execute(
        """
        SELECT
            s.id,
            s.timestamp,
            s.rate,
            s.timezone,
            a.category,
            a.name
        FROM samples AS s
        LEFT JOIN sample_activities AS a ON a.sample_id = s.id
        ORDER BY s.timestamp, s.id, a.position;
        """
    )
    zones: dict[str, tzinfo] = {}
    for _sample_id, rows in groupby(cursor, key=lambda row: row["id"]):
        rows = list(rows)
        head = rows[0]
        zone = zones.get(head["timezone"])
        if zone is None:
            zone = zones[head["timezone"]] = _load_timezone(head["timezone"])
        activities = tuple(
            Activity(row["name"], row["category"]) for row in rows if row["name"] is not None
        )
        yield Entry(
            timestamp=datetime.strptime(head["timestamp"], DATETIME_FMT).replace(
                tzinfo=timezone.utc
            ),
            rate=head["rate"],
            data=EntryData(Context(zone), activities),
        )


def parse_sample(record: dict[str, Any]) -> Entry[EntryData]:
    """Build an entry from one JSON record.

    Expected keys: ``timestamp`` (ISO 8601), ``rate`` (milliseconds), optional
    ``timezone`` (IANA name, also used for naive timestamps) and ``activities``
    (``"Category:name"`` strings).
    """
    try:
        zone = ZoneInfo(record.get("timezone") or "UTC")
        timestamp = datetime.fromisoformat(record["timestamp"])
        rate = int(record["rate"])
    except (KeyError, TypeError, ValueError, ZoneInfoNotFoundError) as exc:
        raise ValueError(f"Invalid sample record: {record!r}") from exc
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=zone)
    timestamp = _to_utc(timestamp)
    activities = tuple(parse_activity(text) for text in record.get("activities", ()))
    return Entry(timestamp, rate, EntryData(Context(zone), activities))


def read_samples(path: Path) -> Iterator[Entry[EntryData]]:
    """Read a JSON lines file of samples, skipping blank lines."""
    with Path(path).open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{line_number}: {exc.msg}") from exc
            yield parse_sample(record)
