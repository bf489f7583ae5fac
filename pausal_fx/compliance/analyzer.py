"""Calendar-year and rolling 365-day income limit checks."""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from pausal_fx.compliance.models import (
    ComplianceReport,
    ComplianceViolation,
    ConvertedPayment,
    YearTotal,
    to_decimal,
)
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

ROLLING_WINDOW = timedelta(days=365)


def year_totals(
    payments: Iterable[ConvertedPayment], limit: Decimal | float | int
) -> list[YearTotal]:
    """Sum converted amounts per calendar year, oldest year first."""

    ceiling = to_decimal(limit)
    totals: dict[int, Decimal] = defaultdict(Decimal)
    counts: dict[int, int] = defaultdict(int)
    for payment in payments:
        year = payment.payment_date.year
        totals[year] += payment.converted_amount
        counts[year] += 1
    return [
        YearTotal(year=year, total=totals[year], payment_count=counts[year], limit=ceiling)
        for year in sorted(totals)
    ]


def rolling_violations(
    payments: Sequence[ConvertedPayment], limit: Decimal | float | int
) -> list[ComplianceViolation]:
    """Return every window ``[d_i, d_i + 365 days)`` whose total exceeds ``limit``.

    Each payment is tried as a window start, so overlapping windows are all
    reported. ``sorted`` is stable, which keeps same-day payments in input
    order.
    """

    ceiling = to_decimal(limit)
    ordered = sorted(payments, key=lambda payment: payment.payment_date)
    violations: list[ComplianceViolation] = []
    for i, first in enumerate(ordered):
        window_end = first.payment_date + ROLLING_WINDOW
        total = Decimal(0)
        count = 0
        last_day = first.payment_date
        for payment in ordered[i:]:
            if payment.payment_date >= window_end:
                break
            total += payment.converted_amount
            count += 1
            last_day = payment.payment_date
        if total > ceiling:
            violations.append(
                ComplianceViolation(
                    window_start=first.payment_date,
                    window_end=window_end - timedelta(days=1),
                    total=total,
                    excess=total - ceiling,
                    payment_count=count,
                    last_payment_date=last_day,
                )
            )
    return violations


def analyze(
    payments: Iterable[ConvertedPayment],
    calendar_year_limit: Decimal | float | int,
    rolling_365_limit: Decimal | float | int,
) -> ComplianceReport:
    """Run both limit checks over already converted payments."""

    converted = list(payments)
    report = ComplianceReport(
        per_year_totals=year_totals(converted, calendar_year_limit),
        violations=rolling_violations(converted, rolling_365_limit),
        calendar_year_limit=to_decimal(calendar_year_limit),
        rolling_365_limit=to_decimal(rolling_365_limit),
    )
    LOGGER.info(
        "Analyzed %s payments: %s year(s) over limit, %s rolling window violation(s)",
        len(converted),
        len(report.exceeding_years),
        len(report.violations),
    )
    return report


__all__ = ["analyze", "rolling_violations", "year_totals", "ROLLING_WINDOW"]
