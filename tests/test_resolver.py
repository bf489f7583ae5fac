"""Resolver tests backed by an in-memory store and fake sources."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from pausal_fx.db.sql_store import SQLRateStore
from pausal_fx.errors import InvalidProvider, NoData, RateUnavailable, SourceUnavailable
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.rates.resolver import RateResolver


class _FakeSource(RateSource):
    def __init__(
        self,
        name: str,
        base: str,
        quotes: dict[str, float],
        *,
        convention: QuoteConvention = QuoteConvention.UNITS_PER_BASE,
        failing_days: set[date] | None = None,
        empty_days: set[date] | None = None,
    ) -> None:
        super().__init__()
        self.name = name
        self.base_currency = base
        self.convention = convention
        self.quotes = quotes
        self.failing_days = failing_days or set()
        self.empty_days = empty_days or set()
        self.calls: list[date] = []

    def fetch_daily_quotes(self, rate_date: date) -> ProviderQuoteSet:
        self.calls.append(rate_date)
        if rate_date in self.failing_days:
            raise SourceUnavailable(self.name, "connection refused")
        if rate_date in self.empty_days:
            raise NoData(self.name, "no rows")
        return ProviderQuoteSet(
            rate_date=rate_date,
            base_currency=self.base_currency,
            quotes=dict(self.quotes),
            convention=self.convention,
            source=self.name,
        )


@pytest.fixture()
def store():
    memory_store = SQLRateStore.in_memory()
    yield memory_store
    memory_store.close()


@pytest.fixture()
def nbs() -> _FakeSource:
    return _FakeSource(
        "nbs",
        "RSD",
        {"EUR": 117.17, "USD": 108.5},
        convention=QuoteConvention.BASE_PER_UNIT,
    )


@pytest.fixture()
def ecb() -> _FakeSource:
    return _FakeSource("ecb", "EUR", {"USD": 1.08, "RSD": 117.2})


@pytest.fixture()
def resolver(store, nbs, ecb) -> RateResolver:
    return RateResolver(store, {"nbs": nbs, "ecb": ecb})


def test_resolve_range_fetches_each_missing_day_and_caches_it(resolver, store, nbs) -> None:
    start = date(2025, 3, 1)
    rates = resolver.resolve_range(start, start + timedelta(days=2), "EUR", "RSD", "nbs")

    assert list(rates) == [start, start + timedelta(days=1), start + timedelta(days=2)]
    assert set(rates.values()) == {117.17}
    assert len(nbs.calls) == 3
    assert store.get(start, "EUR", "RSD") == 117.17


def test_cached_days_make_no_network_calls(resolver, store, nbs) -> None:
    start = date(2025, 3, 1)
    for offset in range(3):
        store.put(start + timedelta(days=offset), "EUR", "RSD", 117.0 + offset)

    rates = resolver.resolve_range(start, start + timedelta(days=2), "EUR", "RSD", "nbs")

    assert nbs.calls == []
    assert rates[start + timedelta(days=2)] == 119.0


def test_resolve_one_twice_hits_the_network_once(resolver, nbs) -> None:
    first = resolver.resolve_one(date(2025, 3, 3), "EUR", "RSD", "nbs")
    second = resolver.resolve_one(date(2025, 3, 3), "eur", "rsd", "NBS")

    assert first == second == 117.17
    assert nbs.calls == [date(2025, 3, 3)]


def test_partial_failures_do_not_abort_the_range(resolver, store, nbs) -> None:
    start = date(2025, 3, 1)
    nbs.failing_days = {start + timedelta(days=1)}
    nbs.empty_days = {start + timedelta(days=2)}

    outcome = resolver.resolve_range_detailed(
        start, start + timedelta(days=3), "EUR", "RSD", "nbs"
    )

    assert outcome.rates[start] == 117.17
    assert outcome.rates[start + timedelta(days=1)] is None
    assert outcome.rates[start + timedelta(days=2)] is None
    assert outcome.rates[start + timedelta(days=3)] == 117.17
    assert isinstance(outcome.errors[start + timedelta(days=1)], SourceUnavailable)
    assert isinstance(outcome.errors[start + timedelta(days=2)], NoData)
    assert outcome.missing == [start + timedelta(days=1), start + timedelta(days=2)]
    assert store.get(start + timedelta(days=1), "EUR", "RSD") is None


def test_unknown_currency_leaves_day_unresolved(resolver, store) -> None:
    day = date(2025, 3, 3)

    rates = resolver.resolve_range(day, day, "EUR", "CHF", "nbs")

    assert rates == {day: None}
    assert store.fetch_range() == []


def test_cross_rate_through_authority_base(resolver, ecb) -> None:
    rate = resolver.resolve_one(date(2025, 3, 3), "USD", "RSD", "ecb")

    assert rate == pytest.approx(117.2 / 1.08)
    assert len(ecb.calls) == 1


@pytest.mark.parametrize("provider", ["bank-of-nowhere", "", None])
def test_invalid_provider_fails_before_any_activity(resolver, store, nbs, ecb, provider) -> None:
    with pytest.raises(InvalidProvider):
        resolver.resolve_range(date(2025, 3, 1), date(2025, 3, 2), "EUR", "RSD", provider)

    assert nbs.calls == [] and ecb.calls == []
    assert store.fetch_range() == []


def test_invalid_provider_is_a_value_error(resolver) -> None:
    with pytest.raises(ValueError):
        resolver.resolve_one(date(2025, 3, 1), "EUR", "RSD", "fed")


def test_resolve_one_raises_rate_unavailable_with_cause(resolver, nbs) -> None:
    day = date(2025, 3, 3)
    nbs.failing_days = {day}

    with pytest.raises(RateUnavailable) as excinfo:
        resolver.resolve_one(day, "EUR", "RSD", "nbs")

    assert excinfo.value.rate_date == day
    assert isinstance(excinfo.value.__cause__, SourceUnavailable)


def test_failed_attempt_can_be_retried_with_other_provider(resolver, store, nbs, ecb) -> None:
    day = date(2025, 3, 3)
    nbs.failing_days = {day}

    with pytest.raises(RateUnavailable):
        resolver.resolve_one(day, "EUR", "RSD", "nbs")
    assert store.get(day, "EUR", "RSD") is None

    assert resolver.resolve_one(day, "EUR", "RSD", "ecb") == 117.2
    assert store.get(day, "EUR", "RSD") == 117.2


def test_same_currency_resolves_without_fetching(resolver, nbs) -> None:
    rates = resolver.resolve_range(date(2025, 3, 1), date(2025, 3, 2), "EUR", "EUR", "nbs")

    assert set(rates.values()) == {1.0}
    assert nbs.calls == []


def test_reversed_range_is_rejected(resolver) -> None:
    with pytest.raises(ValueError):
        resolver.resolve_range(date(2025, 3, 2), date(2025, 3, 1), "EUR", "RSD", "nbs")


def test_string_dates_are_accepted(resolver) -> None:
    rates = resolver.resolve_range("2025-03-01", "2025-03-01", "EUR", "RSD", "nbs")

    assert rates == {date(2025, 3, 1): 117.17}


def test_one_fetch_caches_every_currency_against_the_base(resolver, store, nbs) -> None:
    day = date(2025, 3, 3)

    assert resolver.resolve_one(day, "EUR", "RSD", "nbs") == 117.17
    assert resolver.resolve_one(day, "USD", "RSD", "nbs") == 108.5

    assert nbs.calls == [day]
    cached = {(quote.from_currency, quote.to_currency) for quote in store.fetch_range(day, day)}
    assert cached == {("EUR", "RSD"), ("USD", "RSD")}


def test_requested_cross_pair_is_cached_with_base_pairs(resolver, store, ecb) -> None:
    day = date(2025, 3, 3)

    resolver.resolve_one(day, "USD", "RSD", "ecb")

    assert store.get(day, "USD", "RSD") == pytest.approx(117.2 / 1.08)
    assert store.get(day, "USD", "EUR") == pytest.approx(1 / 1.08)
    assert store.get(day, "RSD", "EUR") == pytest.approx(1 / 117.2)


def test_failed_day_caches_no_other_currencies(resolver, store) -> None:
    day = date(2025, 3, 3)

    with pytest.raises(RateUnavailable):
        resolver.resolve_one(day, "CHF", "RSD", "nbs")

    assert store.fetch_range() == []


def test_providers_lists_configured_source_names(store, nbs, ecb) -> None:
    assert RateResolver(store, {"NBS": nbs, "ecb": ecb}).providers == ("nbs", "ecb")
