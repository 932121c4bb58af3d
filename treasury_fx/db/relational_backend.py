"""SQLAlchemy-backed rate cache shared by the SQLite, Postgres and MySQL backends."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, cast

from sqlalchemy import Column, Date, DateTime, Index, String, create_engine, select, text
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.sql.dml import Insert
from sqlalchemy.types import TypeDecorator

from treasury_fx.db.base_backend import RateCacheBackend
from treasury_fx.models import ExchangeRate, RateCacheEntry
from treasury_fx.utils.cancellation import CancellationToken, ensure_token
from treasury_fx.utils.clock import Clock, SystemClock
from treasury_fx.utils.date_range import DEFAULT_MONTHS_BACK, ResolutionWindow
from treasury_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

TABLE_NAME = "fx_rate_cache"
INDEX_NAME = "ix_fx_rate_cache_currency_date"


class DecimalText(TypeDecorator):
    """Stores ``Decimal`` values as text so no engine rounds them through a float."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value: Any, dialect: Any) -> Decimal | None:
        if value is None:
            return None
        return Decimal(str(value))


class Base(DeclarativeBase):
    pass


class FxRateCacheRow(Base):
    __tablename__ = TABLE_NAME

    currency_key = Column(String(100), primary_key=True)
    record_date = Column(Date, primary_key=True)
    exchange_rate = Column(DecimalText, nullable=False)
    cached_utc = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index(INDEX_NAME, currency_key, record_date.desc()),)


def build_upsert(dialect_name: str, values: dict[str, Any]) -> Insert:
    """Return a single-statement upsert for ``dialect_name``.

    The whole row is replaced on key conflict, including ``cached_utc``.
    """

    table = FxRateCacheRow.__table__
    if dialect_name in {"sqlite", "postgresql"}:
        insert = sqlite.insert if dialect_name == "sqlite" else postgresql.insert
        stmt = insert(table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[table.c.currency_key, table.c.record_date],
            set_={
                "exchange_rate": stmt.excluded.exchange_rate,
                "cached_utc": stmt.excluded.cached_utc,
            },
        )
    if dialect_name in {"mysql", "mariadb"}:
        mysql_stmt = mysql.insert(table).values(**values)
        return mysql_stmt.on_duplicate_key_update(
            exchange_rate=mysql_stmt.inserted.exchange_rate,
            cached_utc=mysql_stmt.inserted.cached_utc,
        )
    raise NotImplementedError(f"Upsert is not supported for the {dialect_name!r} dialect")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalise_record_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _to_rate(row: FxRateCacheRow) -> ExchangeRate:
    return ExchangeRate(
        currency_key=cast(str, row.currency_key),
        record_date=_normalise_record_date(row.record_date),
        rate=cast(Decimal, row.exchange_rate),
    )


class RelationalBackend(RateCacheBackend):
    """Base class that encapsulates SQLAlchemy powered interactions."""

    def __init__(
        self,
        url: str,
        *,
        clock: Clock | None = None,
        engine_factory: Callable[[str], Engine] | None = None,
    ) -> None:
        self.url = url
        self.clock: Clock = clock or SystemClock()
        self._engine_factory = engine_factory or (lambda dsn: create_engine(dsn, future=True))
        self._engine_instance: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = self._engine_factory(self.url)
        return self._engine_instance

    def _session(self) -> Session:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self._get_engine(), expire_on_commit=False, future=True
            )
        return self._session_factory()

    def ensure_schema(self) -> None:
        engine = self._get_engine()
        with engine.begin() as connection:
            LOGGER.info("Ensuring %s schema exists", TABLE_NAME)
            connection.execute(text("SELECT 1"))
        Base.metadata.create_all(engine)

    def get_latest_in_window(
        self,
        currency_key: str,
        anchor_date: date,
        months_back: int = DEFAULT_MONTHS_BACK,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        ensure_token(cancel_token).raise_if_cancelled()
        window = ResolutionWindow.ending_at(anchor_date, months_back)
        stmt = (
            select(FxRateCacheRow)
            .where(FxRateCacheRow.currency_key == currency_key)
            .where(FxRateCacheRow.record_date >= window.start)
            .where(FxRateCacheRow.record_date <= window.end)
            .order_by(FxRateCacheRow.record_date.desc())
            .limit(1)
        )
        with self._session() as session:
            row = session.scalars(stmt).first()
            return _to_rate(row) if row is not None else None

    def get_any_latest(
        self,
        currency_key: str,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> ExchangeRate | None:
        ensure_token(cancel_token).raise_if_cancelled()
        stmt = (
            select(FxRateCacheRow)
            .where(FxRateCacheRow.currency_key == currency_key)
            .order_by(FxRateCacheRow.record_date.desc())
            .limit(1)
        )
        with self._session() as session:
            row = session.scalars(stmt).first()
            return _to_rate(row) if row is not None else None

    def upsert(
        self,
        rate: ExchangeRate,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        ensure_token(cancel_token).raise_if_cancelled()
        values = {
            "currency_key": rate.currency_key,
            "record_date": rate.record_date,
            "exchange_rate": rate.rate,
            "cached_utc": _as_utc(self.clock.utc_now()),
        }
        stmt = build_upsert(self._get_engine().dialect.name, values)
        with self._session() as session:
            session.execute(stmt)
            session.commit()
        LOGGER.debug("Cached %s rate for %s", rate.currency_key, rate.record_date)

    def list_entries(self, currency_key: str | None = None) -> list[RateCacheEntry]:
        stmt = select(FxRateCacheRow).order_by(
            FxRateCacheRow.currency_key, FxRateCacheRow.record_date
        )
        if currency_key is not None:
            stmt = stmt.where(FxRateCacheRow.currency_key == currency_key)
        with self._session() as session:
            return [
                RateCacheEntry(rate=_to_rate(row), cached_at=_as_utc(cast(datetime, row.cached_utc)))
                for row in session.scalars(stmt)
            ]

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


__all__ = ["DecimalText", "FxRateCacheRow", "RelationalBackend", "build_upsert"]
