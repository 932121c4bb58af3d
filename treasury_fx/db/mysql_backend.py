"""MySQL backend strategy."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from treasury_fx.db.relational_backend import RelationalBackend
from treasury_fx.utils.clock import Clock

# Below MySQL's default ``wait_timeout`` so pooled connections are never stale.
POOL_RECYCLE_SECONDS = 3600


def _mysql_engine(url: str) -> Engine:
    if url.startswith("mysql://"):
        url = "mysql+pymysql://" + url[len("mysql://") :]
    return create_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_recycle=POOL_RECYCLE_SECONDS,
    )


class MySQLBackend(RelationalBackend):
    """Rate cache stored in MySQL/MariaDB; upserts use ``ON DUPLICATE KEY UPDATE``."""

    def __init__(self, url: str, *, clock: Clock | None = None) -> None:
        super().__init__(url, clock=clock, engine_factory=_mysql_engine)


__all__ = ["MySQLBackend"]
