"""Derive a ``from -> to`` rate from a single authority's quote set."""

from __future__ import annotations

import math
from typing import cast

from pausal_fx.errors import CurrencyNotFound, NoData
from pausal_fx.ingestion.models import ProviderQuoteSet, QuoteConvention, is_valid_rate


def _quote(quote_set: ProviderQuoteSet, currency: str) -> float:
    if currency not in quote_set:
        raise CurrencyNotFound(quote_set.source, currency, quote_set.rate_date)
    return cast(float, quote_set.quote(currency))


def compute_rate(quote_set: ProviderQuoteSet, from_currency: str, to_currency: str) -> float:
    """Return how many ``to_currency`` units one ``from_currency`` unit buys.

    In "units per base" terms (ECB):

    * base is ``from``: the ``to`` quote itself;
    * base is ``to``: the reciprocal of the ``from`` quote;
    * otherwise a cross rate through the base, ``q(to) / q(from)``.

    "Base per unit" sets (NBS) are the reciprocal view of the same thing, so
    the ratio flips to ``q(from) / q(to)``. The base always quotes ``1.0``,
    which keeps direct rates free of a double reciprocal.

    Raises :class:`CurrencyNotFound` when a currency is not quoted and
    :class:`NoData` when the arithmetic does not yield a positive number.
    """

    source_code = from_currency.upper()
    target_code = to_currency.upper()
    if source_code == target_code:
        return 1.0

    from_quote = _quote(quote_set, source_code)
    to_quote = _quote(quote_set, target_code)
    if quote_set.convention is QuoteConvention.BASE_PER_UNIT:
        numerator, denominator = from_quote, to_quote
    else:
        numerator, denominator = to_quote, from_quote

    rate = numerator / denominator if denominator else math.nan
    if not is_valid_rate(rate):
        raise NoData(
            quote_set.source,
            f"computed {source_code}/{target_code} rate {rate!r} for "
            f"{quote_set.rate_date.isoformat()} is not a positive number",
        )
    return rate


__all__ = ["compute_rate"]
