"""Exceptions raised while resolving currency rates."""

from __future__ import annotations

from datetime import date

__all__ = [
    "RateError",
    "SourceUnavailable",
    "NoData",
    "CurrencyNotFound",
    "InvalidProvider",
    "RateUnavailable",
]


class RateError(Exception):
    """Base class for every rate resolution failure."""


class SourceUnavailable(RateError):
    """The quoting authority could not be reached or returned an unusable page."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class NoData(RateError):
    """The authority responded but has no usable quotes for the requested day."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class CurrencyNotFound(NoData):
    """The quote set for the day does not contain a required currency."""

    def __init__(self, source: str, currency: str, rate_date: date) -> None:
        super().__init__(source, f"{currency} is not quoted for {rate_date.isoformat()}")
        self.currency = currency
        self.rate_date = rate_date


class InvalidProvider(RateError, ValueError):
    """Caller named a rate source that is not configured."""

    def __init__(self, provider: object, available: tuple[str, ...] = ()) -> None:
        choices = ", ".join(available) if available else "none configured"
        super().__init__(f"Unsupported rate provider {provider!r} (expected one of: {choices})")
        self.provider = provider


class RateUnavailable(RateError):
    """No rate could be resolved for a single requested day."""

    def __init__(self, rate_date: date, from_currency: str, to_currency: str) -> None:
        super().__init__(
            f"No {from_currency}/{to_currency} rate available for {rate_date.isoformat()}"
        )
        self.rate_date = rate_date
        self.from_currency = from_currency
        self.to_currency = to_currency
