from datetime import datetime, timedelta, timezone

import pytest

from timelog_stats.db import database_connection, insert_entries
from timelog_stats.models import Activity, Context, Entry, EntryData

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class CountingIterable:
    """Iterable that records how often it was traversed."""

    def __init__(self, items):
        self.items = list(items)
        self.iterations = 0

    def __iter__(self):
        self.iterations += 1
        yield from self.items


@pytest.fixture
def make_entry():
    def factory(minutes, *activities, rate=60_000):
        return Entry(
            BASE_TIME + timedelta(minutes=minutes),
            rate,
            EntryData(Context(), tuple(activities)),
        )

    return factory


@pytest.fixture
def sample_entries(make_entry):
    code = Activity("code", "Work")
    mail = Activity("mail", "Work")
    game = Activity("game", "Play")
    return [
        make_entry(0, code),
        make_entry(1, code),
        make_entry(2, mail),
        make_entry(3, Activity("inactive")),
        make_entry(4, game),
        make_entry(5, code, game),
    ]


@pytest.fixture
def populated_db(tmp_path, sample_entries):
    db_path = tmp_path / "samples.sqlite3"
    with database_connection(db_path) as conn:
        insert_entries(conn, sample_entries)
    return db_path
