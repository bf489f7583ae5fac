"""Store interface shared by every rate cache backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from pausal_fx.ingestion.models import RateQuote


@dataclass(slots=True)
class PersistenceResult:
    """Represents how many rows were inserted or updated in a batch."""

    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        """Return the total number of affected rows."""

        return self.inserted + self.updated

    def __iadd__(self, other: "PersistenceResult") -> "PersistenceResult":
        self.inserted += other.inserted
        self.updated += other.updated
        return self


class RateStore(ABC):
    """Durable ``(date, from, to) -> rate`` mapping with upsert semantics.

    Cached rates never expire: a historical fixing does not change once it
    has been published.
    """

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables/collections and verify connectivity."""

    @abstractmethod
    def get_quote(self, rate_date: date, from_currency: str, to_currency: str) -> RateQuote | None:
        """Return the cached quote for the exact key, or ``None`` when absent."""

    @abstractmethod
    def put_many(self, quotes: Sequence[RateQuote]) -> PersistenceResult:
        """Insert new keys and overwrite the rate/refresh time of existing ones."""

    @abstractmethod
    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        from_currency: str | None = None,
        to_currency: str | None = None,
    ) -> list[RateQuote]:
        """Return cached quotes constrained by the provided dates and pair."""

    def get(self, rate_date: date, from_currency: str, to_currency: str) -> float | None:
        quote = self.get_quote(rate_date, from_currency.upper(), to_currency.upper())
        return quote.rate if quote is not None else None

    def put(
        self, rate_date: date, from_currency: str, to_currency: str, rate: float
    ) -> PersistenceResult:
        # RateQuote validates the rate and upper-cases the codes.
        return self.put_many([RateQuote(rate_date, from_currency, to_currency, rate)])

    def get_many(
        self, keys: Iterable[tuple[date, str, str]]
    ) -> dict[tuple[date, str, str], float | None]:
        return {key: self.get(*key) for key in keys}

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""

    def __enter__(self) -> "RateStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["PersistenceResult", "RateStore"]
