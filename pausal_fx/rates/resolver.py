"""Cache-first rate resolution over inclusive date ranges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping

from pausal_fx.db.base_store import RateStore
from pausal_fx.errors import NoData, RateError, RateUnavailable, SourceUnavailable
from pausal_fx.ingestion.models import ProviderQuoteSet, RateQuote
from pausal_fx.ingestion.sources import normalise_provider
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.rates.cross_rate import compute_rate
from pausal_fx.utils.date_range import iter_days, parse_date
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


def _quotes_to_cache(
    quote_set: ProviderQuoteSet, from_currency: str, to_currency: str, rate: float
) -> list[RateQuote]:
    """Return the requested pair plus every ``code -> base`` rate in ``quote_set``.

    One fetch then answers later requests for other currencies on the same day.
    """

    base = quote_set.base_currency
    cached = {(from_currency, to_currency): rate}
    for code in quote_set.currencies():
        if code == base or (code, base) in cached:
            continue
        try:
            cached[(code, base)] = compute_rate(quote_set, code, base)
        except NoData as exc:
            LOGGER.debug("Not caching %s/%s for %s: %s", code, base, quote_set.rate_date, exc)
    return [
        RateQuote(quote_set.rate_date, source_code, target_code, value)
        for (source_code, target_code), value in cached.items()
    ]


@dataclass(slots=True)
class RangeResolution:
    """Outcome of resolving one currency pair over a date range."""

    rates: dict[date, float | None] = field(default_factory=dict)
    errors: dict[date, RateError] = field(default_factory=dict)
    cache_hits: int = 0
    fetches: int = 0

    @property
    def resolved(self) -> dict[date, float]:
        return {day: rate for day, rate in self.rates.items() if rate is not None}

    @property
    def missing(self) -> list[date]:
        return [day for day, rate in self.rates.items() if rate is None]


class RateResolver:
    """Resolve rates from the store, falling back to one named source per call.

    The resolver never switches authority on its own: the two sources quote
    different currency sets, so mixing them inside one range could produce an
    inconsistent series. A failed day writes nothing to the store, so callers
    can retry the same request against another provider.
    """

    def __init__(self, store: RateStore, sources: Mapping[str, RateSource]) -> None:
        self.store = store
        self.sources: dict[str, RateSource] = {
            name.lower(): source for name, source in sources.items()
        }

    @property
    def providers(self) -> tuple[str, ...]:
        return tuple(self.sources)

    def resolve_range(
        self,
        start_date: date | str,
        end_date: date | str,
        from_currency: str,
        to_currency: str,
        provider: str,
    ) -> dict[date, float | None]:
        """Return ``{day: rate or None}`` for every day in ``[start, end]``."""

        return self.resolve_range_detailed(
            start_date, end_date, from_currency, to_currency, provider
        ).rates

    def resolve_range_detailed(
        self,
        start_date: date | str,
        end_date: date | str,
        from_currency: str,
        to_currency: str,
        provider: str,
    ) -> RangeResolution:
        name = normalise_provider(provider, self.providers)
        source = self.sources[name]
        start = parse_date(start_date)
        end = parse_date(end_date)
        if start > end:
            raise ValueError("start_date must not be after end_date")
        source_code = from_currency.upper()
        target_code = to_currency.upper()

        result = RangeResolution()
        for day in iter_days(start, end):
            if source_code == target_code:
                result.rates[day] = 1.0
                continue
            cached = self.store.get(day, source_code, target_code)
            if cached is not None:
                LOGGER.debug(
                    "Using cached %s/%s rate for %s: %s", source_code, target_code, day, cached
                )
                result.rates[day] = cached
                result.cache_hits += 1
                continue
            try:
                result.fetches += 1
                quote_set = source.fetch_daily_quotes(day)
                rate = compute_rate(quote_set, source_code, target_code)
            except (SourceUnavailable, NoData) as exc:
                LOGGER.warning(
                    "Could not resolve %s/%s for %s via %s: %s",
                    source_code,
                    target_code,
                    day,
                    name,
                    exc,
                )
                result.rates[day] = None
                result.errors[day] = exc
                continue
            self.store.put_many(_quotes_to_cache(quote_set, source_code, target_code, rate))
            LOGGER.info(
                "Fetched %s/%s rate for %s from %s: %s", source_code, target_code, day, name, rate
            )
            result.rates[day] = rate

        if result.errors:
            LOGGER.info(
                "Resolved %s of %s days for %s/%s via %s",
                len(result.rates) - len(result.errors),
                len(result.rates),
                source_code,
                target_code,
                name,
            )
        return result

    def resolve_one(
        self,
        rate_date: date | str,
        from_currency: str,
        to_currency: str,
        provider: str,
    ) -> float:
        """Return a single day's rate or raise :class:`RateUnavailable`."""

        day = parse_date(rate_date)
        outcome = self.resolve_range_detailed(day, day, from_currency, to_currency, provider)
        rate = outcome.rates.get(day)
        if rate is None:
            cause = outcome.errors.get(day)
            raise RateUnavailable(day, from_currency.upper(), to_currency.upper()) from cause
        return rate


__all__ = ["RangeResolution", "RateResolver"]
