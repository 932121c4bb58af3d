"""PostgreSQL backend strategy."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from treasury_fx.db.relational_backend import RelationalBackend
from treasury_fx.utils.clock import Clock


def normalise_postgres_url(url: str) -> str:
    """SQLAlchemy only understands ``postgresql://``; accept the common aliases too."""

    scheme, sep, rest = url.partition("://")
    base, plus, driver = scheme.partition("+")
    if base.lower() in {"postgres", "postgressql"}:
        base = "postgresql"
    return f"{base}{plus}{driver}{sep}{rest}"


def _postgres_engine(url: str) -> Engine:
    return create_engine(url, future=True, pool_pre_ping=True)


class PostgresBackend(RelationalBackend):
    """Rate cache stored in a PostgreSQL table; upserts use ``ON CONFLICT``."""

    def __init__(self, url: str, *, clock: Clock | None = None) -> None:
        super().__init__(normalise_postgres_url(url), clock=clock, engine_factory=_postgres_engine)


__all__ = ["PostgresBackend", "normalise_postgres_url"]
