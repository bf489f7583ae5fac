"""Helpers for locating the default rate cache database."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_SQLITE_DB_PATH", "default_sqlite_url"]

# Mirrors the ``./data.db`` location the contractor tooling has always used.
DEFAULT_SQLITE_DB_PATH: Final[Path] = Path("data.db")


def default_sqlite_url() -> str:
    """Return a SQLAlchemy URL for :data:`DEFAULT_SQLITE_DB_PATH` in the current directory."""

    return f"sqlite:///{DEFAULT_SQLITE_DB_PATH.resolve().as_posix()}"
