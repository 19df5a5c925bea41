"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "Whatimdoing"
APP_AUTHOR = "Whatimdoing"


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_state_path() -> Path:
    return get_data_dir() / "state.json"


def get_db_path() -> Path:
    return get_data_dir() / "activity.sqlite3"


def default_path_for(backend: str) -> Path:
    return get_db_path() if backend == "sqlite" else get_state_path()
