"""Public interface for the pausal_fx package."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from importlib import metadata as importlib_metadata
from typing import Any, Iterable, Mapping

from pausal_fx.compliance.analyzer import analyze
from pausal_fx.compliance.conversion import ConversionResult, convert_payments
from pausal_fx.compliance.models import (
    ComplianceReport,
    ComplianceViolation,
    ConvertedPayment,
    PaymentRecord,
    YearTotal,
)
from pausal_fx.config import DatabaseBackend, DatabaseConnectionInfo, Settings
from pausal_fx.db.base_store import PersistenceResult, RateStore
from pausal_fx.db.sql_store import SQLRateStore
from pausal_fx.errors import (
    CurrencyNotFound,
    InvalidProvider,
    NoData,
    RateError,
    RateUnavailable,
    SourceUnavailable,
)
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention, RateQuote
from pausal_fx.ingestion.sources import build_sources, normalise_provider
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.rates.resolver import RangeResolution, RateResolver
from pausal_fx.utils.date_range import parse_date
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "__version__",
    "PausalFx",
    "Settings",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "RateResolver",
    "RangeResolution",
    "RateStore",
    "SQLRateStore",
    "RateSource",
    "RateQuote",
    "ProviderQuoteSet",
    "QuoteConvention",
    "PersistenceResult",
    "PaymentRecord",
    "ConvertedPayment",
    "ComplianceReport",
    "ComplianceViolation",
    "YearTotal",
    "ConversionResult",
    "analyze",
    "convert_payments",
    "RateError",
    "SourceUnavailable",
    "NoData",
    "CurrencyNotFound",
    "InvalidProvider",
    "RateUnavailable",
]

try:
    __version__ = importlib_metadata.version("pausal-fx")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


def open_store(connection_info: DatabaseConnectionInfo) -> RateStore:
    """Build the rate store described by ``connection_info``."""

    if connection_info.is_mongodb:
        # pymongo is an optional extra; only import it when asked for.
        from pausal_fx.db.mongo_store import MongoRateStore

        return MongoRateStore(connection_info.url, database=connection_info.name)
    return SQLRateStore.from_url(connection_info.url)


class PausalFx:
    """Package facade that owns the store, the sources and the resolver.

    Everything is constructed explicitly and released by :meth:`close`; use
    the instance as a context manager to scope network sessions and the
    database connection to one run.
    """

    __slots__ = ("settings", "store", "sources", "resolver", "_owns_store", "_closed")

    __version__ = __version__

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: RateStore | None = None,
        sources: Mapping[str, RateSource] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.sources: dict[str, RateSource] = (
            {name.lower(): source for name, source in sources.items()}
            if sources is not None
            else build_sources(timeout=self.settings.timeout)
        )
        # Fail fast on a misconfigured provider name, before anything is opened.
        normalise_provider(self.settings.provider, self.sources)
        if self.settings.fallback_provider:
            normalise_provider(self.settings.fallback_provider, self.sources)
        self._owns_store = store is None
        self.store = store if store is not None else open_store(self.settings.connection_info)
        self.resolver = RateResolver(self.store, self.sources)
        for source in self.sources.values():
            source.open()
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        for source in self.sources.values():
            source.close()
        if self._owns_store:
            self.store.close()
        self._closed = True

    def __enter__(self) -> "PausalFx":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def resolve_range(
        self,
        start_date: date | str,
        end_date: date | str,
        from_currency: str | None = None,
        to_currency: str | None = None,
        provider: str | None = None,
    ) -> dict[date, float | None]:
        """Resolve every day in the range; unresolved days map to ``None``."""

        return self.resolver.resolve_range(
            start_date,
            end_date,
            from_currency or self.settings.payment_currency,
            to_currency or self.settings.reporting_currency,
            provider or self.settings.provider,
        )

    def resolve_one(
        self,
        rate_date: date | str,
        from_currency: str | None = None,
        to_currency: str | None = None,
        provider: str | None = None,
    ) -> float:
        return self.resolver.resolve_one(
            rate_date,
            from_currency or self.settings.payment_currency,
            to_currency or self.settings.reporting_currency,
            provider or self.settings.provider,
        )

    def resolve_with_fallback(
        self,
        rate_date: date | str,
        from_currency: str | None = None,
        to_currency: str | None = None,
    ) -> float:
        """Try the configured provider first, then the fallback provider once."""

        day = parse_date(rate_date)
        source_code = from_currency or self.settings.payment_currency
        target_code = to_currency or self.settings.reporting_currency
        try:
            return self.resolver.resolve_one(day, source_code, target_code, self.settings.provider)
        except (RateUnavailable, SourceUnavailable) as exc:
            fallback = self.settings.fallback_provider
            if not fallback or fallback == self.settings.provider:
                raise
            LOGGER.warning(
                "%s failed for %s (%s); trying fallback provider %s",
                self.settings.provider,
                day,
                exc,
                fallback,
            )
        return self.resolver.resolve_one(day, source_code, target_code, fallback)

    def convert_payments(
        self,
        payments: Iterable[PaymentRecord],
        *,
        provider: str | None = None,
    ) -> ConversionResult:
        return convert_payments(
            payments,
            self.resolver,
            self.settings.reporting_currency,
            provider or self.settings.provider,
        )

    def analyze(
        self,
        payments: Iterable[ConvertedPayment],
        calendar_year_limit: Decimal | float | int | None = None,
        rolling_365_limit: Decimal | float | int | None = None,
    ) -> ComplianceReport:
        if calendar_year_limit is None:
            calendar_year_limit = self.settings.calendar_year_limit
        if rolling_365_limit is None:
            rolling_365_limit = self.settings.rolling_365_limit
        return analyze(payments, calendar_year_limit, rolling_365_limit)

    def report(self, payments: Iterable[PaymentRecord]) -> dict[str, Any]:
        """Convert ``payments`` and run both limit checks with configured limits.

        Returns ``{"report": ComplianceReport, "unresolved": [PaymentRecord]}``
        so callers can decide whether missing rates invalidate the result.
        """

        conversion = self.convert_payments(payments)
        return {
            "report": self.analyze(conversion.converted),
            "unresolved": conversion.unresolved,
        }
