"""Data models shared across rate sources, stores and the resolver."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class QuoteConvention(str, Enum):
    """Direction in which an authority expresses its quotes."""

    # ``USD: 1.08`` means 1.08 USD buy one unit of the base currency (ECB).
    UNITS_PER_BASE = "units_per_base"
    # ``EUR: 117.17`` means one EUR costs 117.17 units of the base currency (NBS).
    BASE_PER_UNIT = "base_per_unit"


@dataclass(slots=True)
class RateQuote:
    """Representation of a single cached ``from -> to`` rate for one day."""

    rate_date: date
    from_currency: str
    to_currency: str
    rate: float
    fetched_at: datetime | None = None

    def __post_init__(self) -> None:
        self.from_currency = self.from_currency.upper()
        self.to_currency = self.to_currency.upper()
        if not is_valid_rate(self.rate):
            raise ValueError(f"Rate must be a positive number, got {self.rate!r}")

    @property
    def key(self) -> tuple[date, str, str]:
        return (self.rate_date, self.from_currency, self.to_currency)


@dataclass(slots=True)
class ProviderQuoteSet:
    """Quotes published by one authority for exactly one calendar day."""

    rate_date: date
    base_currency: str
    quotes: dict[str, float] = field(default_factory=dict)
    convention: QuoteConvention = QuoteConvention.UNITS_PER_BASE
    source: str = ""

    def __contains__(self, currency: object) -> bool:
        return isinstance(currency, str) and (
            currency.upper() == self.base_currency or currency.upper() in self.quotes
        )

    def __len__(self) -> int:
        return len(self.quotes)

    def currencies(self) -> list[str]:
        return sorted(self.quotes)

    def quote(self, currency: str) -> float | None:
        """Return the published value for ``currency`` in the set's convention.

        ``None`` means the currency is absent. The base currency always
        quotes ``1.0`` against itself.
        """

        code = currency.upper()
        if code == self.base_currency:
            return 1.0
        return self.quotes.get(code)


def is_valid_rate(value: object) -> bool:
    """Return True when ``value`` is a finite, strictly positive number."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0
