"""Rate cache stores and the default SQLite location."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_SQLITE_DB_PATH"]

# Relative to the working directory unless a DSN says otherwise.
DEFAULT_SQLITE_DB_PATH: Final[Path] = Path("App_Data") / "fx_rate_cache.db"
