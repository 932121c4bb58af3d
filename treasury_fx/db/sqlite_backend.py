"""SQLite backend strategy implementation."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from treasury_fx.db import DEFAULT_SQLITE_DB_PATH
from treasury_fx.db.relational_backend import RelationalBackend
from treasury_fx.utils.clock import Clock

MEMORY = ":memory:"


def _sqlite_engine(url: str) -> Engine:
    if url.endswith(MEMORY):
        # A single shared connection, otherwise every checkout sees an empty database.
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, future=True, connect_args={"check_same_thread": False})


class SQLiteBackend(RelationalBackend):
    """Backend strategy that stores rates in a local SQLite file."""

    def __init__(
        self,
        db_path: str | Path = DEFAULT_SQLITE_DB_PATH,
        *,
        clock: Clock | None = None,
    ) -> None:
        if str(db_path) == MEMORY:
            self.db_path: Path | None = None
            url = f"sqlite:///{MEMORY}"
        else:
            self.db_path = Path(db_path).expanduser().resolve()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{self.db_path.as_posix()}"
        super().__init__(url, clock=clock, engine_factory=_sqlite_engine)
        self.ensure_schema()


__all__ = ["SQLiteBackend"]
