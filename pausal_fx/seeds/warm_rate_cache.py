"""CLI + helpers for pre-filling the rate cache over a date range."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Sequence

from pausal_fx import PausalFx
from pausal_fx.config import Settings
from pausal_fx.db.base_store import RateStore
from pausal_fx.ingestion.sources import SOURCE_CLASSES
from pausal_fx.ingestion.strategy import RateSource
from pausal_fx.utils.date_range import date_range
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["SeedResult", "seed_rates", "parse_args", "main"]


@dataclass(slots=True)
class SeedResult:
    provider: str
    resolved: int = 0
    cached: int = 0
    fetched: int = 0
    failed: list[date] = field(default_factory=list)


def seed_rates(
    start: str | date,
    end: str | date,
    *,
    from_currency: str = "EUR",
    to_currency: str = "RSD",
    provider: str = "nbs",
    db_url: str | None = None,
    store: RateStore | None = None,
    sources: Mapping[str, RateSource] | None = None,
    dry_run: bool = False,
) -> SeedResult:
    """Resolve (and therefore cache) every day between ``start`` and ``end``."""

    window = date_range(start, end)
    if dry_run:
        LOGGER.info(
            "Dry-run enabled; skipping %s/%s seeding for %s → %s (%s days)",
            from_currency,
            to_currency,
            window.start,
            window.end,
            len(window),
        )
        return SeedResult(provider=provider.lower())

    settings = Settings(db_url=db_url or "", provider=provider, fallback_provider=None)
    with PausalFx(settings, store=store, sources=sources) as fx:
        outcome = fx.resolver.resolve_range_detailed(
            window.start, window.end, from_currency, to_currency, settings.provider
        )
    result = SeedResult(
        provider=settings.provider,
        resolved=len(outcome.resolved),
        cached=outcome.cache_hits,
        fetched=outcome.fetches - len(outcome.errors),
        failed=outcome.missing,
    )
    LOGGER.info(
        "Seeding finished: %s days resolved (%s cached, %s fetched), %s failed",
        result.resolved,
        result.cached,
        result.fetched,
        len(result.failed),
    )
    return result


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--from", dest="start", required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="end", required=True, help="End date (YYYY-MM-DD)")
    parser.add_argument("--pair", default="EUR/RSD", help="Currency pair, e.g. EUR/RSD")
    parser.add_argument(
        "--provider",
        default="nbs",
        choices=sorted(SOURCE_CLASSES),
        help="Rate source used for cache misses",
    )
    parser.add_argument("--db", dest="db_url", help="Database URL (defaults to ./data.db)")
    parser.add_argument("--dry-run", action="store_true", help="Validate arguments only")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    from_currency, _, to_currency = args.pair.upper().partition("/")
    if not from_currency or not to_currency:
        raise SystemExit("--pair must look like EUR/RSD")
    seed_rates(
        args.start,
        args.end,
        from_currency=from_currency,
        to_currency=to_currency,
        provider=args.provider,
        db_url=args.db_url,
        dry_run=args.dry_run,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
