"""Helpers for locating the sample database."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "TimelogStats"
APP_AUTHOR = "TimelogStats"
DB_FILENAME = "samples.sqlite3"
DB_PATH_ENV = "TIMELOG_STATS_DB"


def get_data_dir() -> Path:
    """Return the per-user directory holding the sample database."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    """Resolve the sample database used when no ``--db`` is given.

    ``TIMELOG_STATS_DB`` takes precedence over the platform data directory so a
    log kept elsewhere can be summarized without repeating the option.
    """
    override = os.getenv(DB_PATH_ENV)
    if override:
        path = Path(override).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path
    return get_data_dir() / DB_FILENAME
