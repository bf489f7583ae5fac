"""Lookup of the available rate sources by canonical name."""

from __future__ import annotations

from typing import Iterable

from pausal_fx.errors import InvalidProvider
from pausal_fx.ingestion.ecb_xml import ECBRateSource
from pausal_fx.ingestion.nbs_html import NBSRateSource
from pausal_fx.ingestion.strategy import DEFAULT_TIMEOUT, RateSource

SOURCE_CLASSES: dict[str, type[RateSource]] = {
    NBSRateSource.name: NBSRateSource,
    ECBRateSource.name: ECBRateSource,
}


def normalise_provider(provider: object, available: Iterable[str] | None = None) -> str:
    """Return the canonical lower-case provider name or raise ``InvalidProvider``."""

    choices = tuple(available) if available is not None else tuple(SOURCE_CLASSES)
    if not isinstance(provider, str) or provider.strip().lower() not in choices:
        raise InvalidProvider(provider, choices)
    return provider.strip().lower()


def build_sources(
    names: Iterable[str] | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, RateSource]:
    """Instantiate (but do not open) the named sources, all of them by default."""

    selected = [normalise_provider(name) for name in (names or SOURCE_CLASSES)]
    return {name: SOURCE_CLASSES[name](timeout=timeout) for name in selected}


__all__ = ["SOURCE_CLASSES", "build_sources", "normalise_provider"]
