"""Payment and compliance result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert money-like input to ``Decimal`` without binary float noise."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("booleans are not amounts")
    return Decimal(str(value))


@dataclass(slots=True, frozen=True)
class PaymentRecord:
    """A received payment as loaded by the payments layer."""

    payment_date: date
    amount: Decimal | float | int
    currency: str = "EUR"
    payment_id: int | None = None


@dataclass(slots=True, frozen=True)
class ConvertedPayment:
    """A payment together with its amount in the reporting currency."""

    payment_date: date
    amount: Decimal
    currency: str
    converted_amount: Decimal
    target_currency: str
    rate: float
    payment_id: int | None = None

    @classmethod
    def from_payment(
        cls, payment: PaymentRecord, rate: float, target_currency: str
    ) -> "ConvertedPayment":
        amount = to_decimal(payment.amount)
        return cls(
            payment_date=payment.payment_date,
            amount=amount,
            currency=payment.currency.upper(),
            converted_amount=amount * to_decimal(rate),
            target_currency=target_currency.upper(),
            rate=rate,
            payment_id=payment.payment_id,
        )


@dataclass(slots=True, frozen=True)
class YearTotal:
    """Income summed over one calendar year."""

    year: int
    total: Decimal
    payment_count: int
    limit: Decimal

    @property
    def exceeds(self) -> bool:
        return self.total > self.limit

    @property
    def excess(self) -> Decimal:
        return self.total - self.limit if self.exceeds else Decimal(0)


@dataclass(slots=True, frozen=True)
class ComplianceViolation:
    """A 365-day window whose income is above the rolling limit.

    ``window_end`` is the last day still inside the window;
    ``last_payment_date`` is the latest payment that contributed to it.
    """

    window_start: date
    window_end: date
    total: Decimal
    excess: Decimal
    payment_count: int
    last_payment_date: date | None = None


@dataclass(slots=True)
class ComplianceReport:
    per_year_totals: list[YearTotal] = field(default_factory=list)
    violations: list[ComplianceViolation] = field(default_factory=list)
    calendar_year_limit: Decimal = Decimal(0)
    rolling_365_limit: Decimal = Decimal(0)

    @property
    def exceeding_years(self) -> list[YearTotal]:
        return [year for year in self.per_year_totals if year.exceeds]

    @property
    def is_compliant(self) -> bool:
        return not self.violations and not self.exceeding_years


__all__ = [
    "ComplianceReport",
    "ComplianceViolation",
    "ConvertedPayment",
    "PaymentRecord",
    "YearTotal",
    "to_decimal",
]
