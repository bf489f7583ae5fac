"""SQLAlchemy backed rate cache (SQLite, PostgreSQL, MySQL)."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Sequence, cast

from sqlalchemy import Column, Date, DateTime, Float, String, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pausal_fx.db import DEFAULT_SQLITE_DB_PATH
from pausal_fx.db.base_store import PersistenceResult, RateStore
from pausal_fx.ingestion.models import RateQuote
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class _ExchangeRate(Base):
    __tablename__ = "exchange_rates"

    rate_date = Column(Date, primary_key=True)
    from_currency = Column(String(3), primary_key=True)
    to_currency = Column(String(3), primary_key=True)
    rate = Column(Float, nullable=False)
    fetched_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_quote(model: _ExchangeRate) -> RateQuote:
    return RateQuote(
        rate_date=cast(date, model.rate_date),
        from_currency=cast(str, model.from_currency),
        to_currency=cast(str, model.to_currency),
        rate=cast(float, model.rate),
        fetched_at=cast(datetime, model.fetched_at),
    )


class SQLRateStore(RateStore):
    """Rate cache living in a relational database reached through ``engine``.

    The engine is supplied by the caller so tests can hand in an in-memory
    SQLite database; :meth:`close` disposes it only when this store built it.
    """

    def __init__(self, engine: Engine, *, owns_engine: bool = False) -> None:
        self.engine = engine
        self._owns_engine = owns_engine
        self._SessionFactory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, future=True
        )
        self.ensure_schema()

    @classmethod
    def from_url(cls, url: str) -> "SQLRateStore":
        LOGGER.info("Opening rate cache at %s", url.split("@")[-1])
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(url, echo=False, future=True, connect_args=connect_args)
        return cls(engine, owns_engine=True)

    @classmethod
    def from_path(cls, db_path: str | Path = DEFAULT_SQLITE_DB_PATH) -> "SQLRateStore":
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls.from_url(f"sqlite:///{path.as_posix()}")

    @classmethod
    def in_memory(cls) -> "SQLRateStore":
        # StaticPool keeps every session on the single in-memory connection.
        engine = create_engine(
            "sqlite://",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(engine, owns_engine=True)

    def ensure_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    def get_quote(self, rate_date: date, from_currency: str, to_currency: str) -> RateQuote | None:
        pk = {
            "rate_date": rate_date,
            "from_currency": from_currency.upper(),
            "to_currency": to_currency.upper(),
        }
        with self._SessionFactory() as session:
            model = session.get(_ExchangeRate, pk)
            return _to_quote(model) if model is not None else None

    def put_many(self, quotes: Sequence[RateQuote]) -> PersistenceResult:
        result = PersistenceResult()
        if not quotes:
            return result
        with self._SessionFactory() as session:
            for quote in quotes:
                fetched_at = quote.fetched_at or _utcnow()
                pk = {
                    "rate_date": quote.rate_date,
                    "from_currency": quote.from_currency,
                    "to_currency": quote.to_currency,
                }
                existing = session.get(_ExchangeRate, pk)
                if existing is None:
                    session.add(_ExchangeRate(**pk, rate=quote.rate, fetched_at=fetched_at))
                    result.inserted += 1
                else:
                    setattr(existing, "rate", quote.rate)
                    setattr(existing, "fetched_at", fetched_at)
                    result.updated += 1
            session.commit()
        LOGGER.debug(
            "Stored %s rate rows (inserted=%s, updated=%s)",
            result.total,
            result.inserted,
            result.updated,
        )
        return result

    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        from_currency: str | None = None,
        to_currency: str | None = None,
    ) -> list[RateQuote]:
        stmt = select(_ExchangeRate).order_by(
            _ExchangeRate.rate_date, _ExchangeRate.from_currency, _ExchangeRate.to_currency
        )
        if start is not None:
            stmt = stmt.where(_ExchangeRate.rate_date >= start)
        if end is not None:
            stmt = stmt.where(_ExchangeRate.rate_date <= end)
        if from_currency is not None:
            stmt = stmt.where(_ExchangeRate.from_currency == from_currency.upper())
        if to_currency is not None:
            stmt = stmt.where(_ExchangeRate.to_currency == to_currency.upper())
        with self._SessionFactory() as session:
            return [_to_quote(cast(_ExchangeRate, row)) for row in session.execute(stmt).scalars()]

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()


__all__ = ["SQLRateStore"]
