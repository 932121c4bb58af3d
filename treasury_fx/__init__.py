"""Public interface for the treasury_fx package."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Mapping
from urllib.parse import unquote, urlparse

import requests
from sqlalchemy import create_engine, text

from treasury_fx.conversion import ConvertedAmount, convert_amount, convert_purchase
from treasury_fx.db import DEFAULT_SQLITE_DB_PATH
from treasury_fx.db.base_backend import RateCacheBackend
from treasury_fx.db.mongo_backend import MongoBackend
from treasury_fx.db.mysql_backend import MySQLBackend
from treasury_fx.db.postgres_backend import PostgresBackend, normalise_postgres_url
from treasury_fx.db.sqlite_backend import SQLiteBackend
from treasury_fx.exceptions import (
    ConversionUnavailableError,
    OperationCancelled,
    RateValidationError,
    TreasuryFxError,
    UpstreamUnavailableError,
)
from treasury_fx.models import ExchangeRate, Money
from treasury_fx.providers.treasury import TreasuryRateProvider
from treasury_fx.resolver import RateResolver
from treasury_fx.settings import ProviderSettings
from treasury_fx.utils.cancellation import CancellationToken
from treasury_fx.utils.clock import Clock, SystemClock

__all__ = [
    "__version__",
    "CancellationToken",
    "ConversionUnavailableError",
    "ConvertedAmount",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "ExchangeRate",
    "Money",
    "OperationCancelled",
    "ProviderSettings",
    "RateResolver",
    "RateValidationError",
    "TreasuryFx",
    "TreasuryFxError",
    "UpstreamUnavailableError",
    "convert_amount",
]

try:
    __version__ = importlib_metadata.version("treasury-fx")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


class DatabaseBackend(str, Enum):
    """Supported rate cache engines."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def from_scheme(cls, scheme: str) -> "DatabaseBackend":
        """Normalise URL schemes (``postgresql+psycopg2``, ``mongodb+srv``...) into a backend."""

        if not scheme:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        base_scheme = scheme.lower().partition("+")[0]
        if base_scheme in {"postgresql", "postgres", "postgressql"}:
            return cls.POSTGRES
        if base_scheme == "sqlite":
            return cls.SQLITE
        if base_scheme in {"mysql", "mariadb"}:
            return cls.MYSQL
        if base_scheme == "mongodb":
            return cls.MONGODB
        raise ValueError(
            "Unsupported database backend. Supported values are SQLite, MySQL, "
            "Postgres, and MongoDB."
        )


def _canonical_url(backend: DatabaseBackend, url: str) -> str:
    """Rewrite scheme aliases to the SQLAlchemy dialect the backend actually uses."""

    if backend is DatabaseBackend.POSTGRES:
        return normalise_postgres_url(url)
    if backend is DatabaseBackend.MYSQL:
        scheme, sep, rest = url.partition("://")
        if "+" not in scheme:
            return f"{scheme.lower()}+pymysql{sep}{rest}"
    return url


@dataclass(slots=True)
class DatabaseConnectionInfo:
    """Describes where the rate cache lives."""

    backend: DatabaseBackend
    url: str
    name: str | None = None

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        """Create a connection object by parsing a database URL/DSN.

        For SQLite, ``name`` is the database file path (``sqlite:///cache.db`` is
        relative, ``sqlite:////var/cache.db`` absolute, ``sqlite:///:memory:``
        in-memory). For the other engines it is the database name.
        """

        parsed = urlparse(url)
        if not parsed.scheme or "://" not in url:
            raise ValueError("DB_URL must include a scheme (e.g. sqlite:// or postgres://)")
        backend = DatabaseBackend.from_scheme(parsed.scheme)
        url = _canonical_url(backend, url)
        parsed = urlparse(url)
        if backend is DatabaseBackend.SQLITE:
            path = unquote(url.split("://", 1)[1])
            name = path[1:] if path.startswith("/") else path
            return cls(backend=backend, url=url, name=name or None)
        name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(backend=backend, url=url, name=name)

    @classmethod
    def default_sqlite(cls) -> "DatabaseConnectionInfo":
        path = DEFAULT_SQLITE_DB_PATH.as_posix()
        return cls(backend=DatabaseBackend.SQLITE, url=f"sqlite:///{path}", name=path)

    @property
    def is_sqlite(self) -> bool:
        return self.backend is DatabaseBackend.SQLITE


def build_cache_backend(
    connection_info: DatabaseConnectionInfo, *, clock: Clock | None = None
) -> RateCacheBackend:
    """Instantiate and prepare the cache backend described by ``connection_info``."""

    backend = connection_info.backend
    if backend is DatabaseBackend.SQLITE:
        return SQLiteBackend(connection_info.name or DEFAULT_SQLITE_DB_PATH, clock=clock)
    cache: RateCacheBackend
    if backend is DatabaseBackend.POSTGRES:
        cache = PostgresBackend(connection_info.url, clock=clock)
    elif backend is DatabaseBackend.MYSQL:
        cache = MySQLBackend(connection_info.url, clock=clock)
    elif backend is DatabaseBackend.MONGODB:
        cache = MongoBackend(connection_info.url, database=connection_info.name, clock=clock)
    else:  # pragma: no cover - exhaustive enum
        raise ValueError(f"Unsupported backend: {backend}")
    cache.ensure_schema()
    return cache


class TreasuryFx:
    """Package facade wiring the cache, the Treasury provider and the resolver."""

    __slots__ = ("connection_info", "settings", "clock", "cache", "provider", "resolver")

    __version__ = __version__

    def __init__(
        self,
        db_config: DatabaseConnectionInfo | str | None = None,
        *,
        settings: ProviderSettings | None = None,
        session: requests.Session | None = None,
        clock: Clock | None = None,
        cache: RateCacheBackend | None = None,
    ) -> None:
        """Configure persistence and the upstream client.

        ``db_config`` is either a ``DatabaseConnectionInfo`` or a DSN string;
        when omitted the cache lives in a local SQLite file. A ready-made
        ``cache`` backend takes precedence over ``db_config``.
        """

        if isinstance(db_config, DatabaseConnectionInfo):
            self.connection_info = db_config
        elif isinstance(db_config, str):
            self.connection_info = DatabaseConnectionInfo.from_url(db_config)
        else:
            self.connection_info = DatabaseConnectionInfo.default_sqlite()
        self.settings = settings or ProviderSettings()
        self.clock: Clock = clock or SystemClock()
        self.cache = cache or build_cache_backend(self.connection_info, clock=self.clock)
        self.provider = TreasuryRateProvider(self.settings, session=session)
        self.resolver = RateResolver(self.cache, self.provider, months_back=self.settings.months_back)

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        session: requests.Session | None = None,
        clock: Clock | None = None,
    ) -> "TreasuryFx":
        """Build a facade from ``DB_URL`` and the ``FX_*`` variables."""

        env = os.environ if environ is None else environ
        db_url = env.get("DB_URL") or None
        return cls(db_url, settings=ProviderSettings.from_env(env), session=session, clock=clock)

    def resolve(
        self,
        currency_key: str,
        anchor_date: date | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate:
        """Return the rate for ``currency_key`` as of ``anchor_date`` (default: today, UTC)."""

        anchor = anchor_date or self.clock.utc_today()
        return self.resolver.resolve(currency_key, anchor, cancel_token=cancel_token)

    def convert(
        self,
        amount: Money | Decimal | str | int,
        currency_key: str,
        anchor_date: date | None = None,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ConvertedAmount:
        """Convert a USD amount into ``currency_key`` using the rate as of ``anchor_date``."""

        money = amount if isinstance(amount, Money) else Money.from_usd(amount)
        anchor = anchor_date or self.clock.utc_today()
        return convert_purchase(
            self.resolver, money, currency_key, anchor, cancel_token=cancel_token
        )

    def connection(self) -> tuple[bool, str | None]:
        """Attempt to reach the cache database and report the outcome."""

        if self.connection_info.backend is DatabaseBackend.MONGODB:
            try:
                self.cache.ensure_schema()
            except (RuntimeError, ModuleNotFoundError) as exc:
                return False, str(exc)
            return True, None
        url = self.connection_info.url
        name = self.connection_info.name
        if self.connection_info.is_sqlite and name and name != ":memory:":
            url = f"sqlite:///{Path(name).expanduser().resolve().as_posix()}"
        engine = None
        try:
            engine = create_engine(url, future=True)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except ModuleNotFoundError as exc:
            return False, f"Missing optional dependency '{exc.name or exc}'"
        except Exception as exc:  # pragma: no cover - SQLAlchemy provides error detail
            return False, str(exc)
        finally:
            if engine is not None:
                engine.dispose()
        return True, None

    def close(self) -> None:
        self.provider.close()
        self.cache.close()

    def __enter__(self) -> "TreasuryFx":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()
