"""Convert payment snapshots into the reporting currency."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from pausal_fx.compliance.models import ConvertedPayment, PaymentRecord
from pausal_fx.errors import RateUnavailable
from pausal_fx.rates.resolver import RateResolver
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class ConversionResult:
    converted: list[ConvertedPayment] = field(default_factory=list)
    unresolved: list[PaymentRecord] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved


def convert_payments(
    payments: Iterable[PaymentRecord],
    resolver: RateResolver,
    to_currency: str,
    provider: str,
) -> ConversionResult:
    """Convert each payment with the rate for its own date.

    Each distinct ``(date, currency)`` is resolved once. Payments whose rate
    cannot be resolved are returned in ``unresolved``; whether that blocks a
    report is the caller's decision.
    """

    target = to_currency.upper()
    rates: dict[tuple[date, str], float | None] = {}
    result = ConversionResult()
    for payment in payments:
        key = (payment.payment_date, payment.currency.upper())
        if key not in rates:
            try:
                rates[key] = resolver.resolve_one(key[0], key[1], target, provider)
            except RateUnavailable as exc:
                LOGGER.warning("Payment on %s left unconverted: %s", key[0], exc)
                rates[key] = None
        rate = rates[key]
        if rate is None:
            result.unresolved.append(payment)
            continue
        result.converted.append(ConvertedPayment.from_payment(payment, rate, target))
    return result


__all__ = ["ConversionResult", "convert_payments"]
