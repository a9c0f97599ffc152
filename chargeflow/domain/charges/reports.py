"""Charge statistics and merchant balance derived from stored totals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from typing import Iterable

from .models import ChargeStatus, PaymentMethod

SUCCESSFUL_STATUSES = (ChargeStatus.COMPLETED, ChargeStatus.PARTIALLY_REFUNDED, ChargeStatus.REFUNDED)
REFUNDED_STATUSES = (ChargeStatus.PARTIALLY_REFUNDED, ChargeStatus.REFUNDED)
IN_FLIGHT_STATUSES = (ChargeStatus.PENDING, ChargeStatus.PROCESSING)

RATE_QUANTUM = Decimal("0.01")


class StatisticsPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    def since(self, now: datetime) -> datetime:
        if self is StatisticsPeriod.TODAY:
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        days = {StatisticsPeriod.WEEK: 7, StatisticsPeriod.MONTH: 30, StatisticsPeriod.YEAR: 365}[self]
        return now - timedelta(days=days)


@dataclass(frozen=True, slots=True)
class ChargeTotals:
    """One aggregated row of the charge store: a currency, method and status bucket."""

    currency: str
    payment_method: PaymentMethod
    status: ChargeStatus
    count: int
    amount: int
    net_amount: int
    amount_refunded: int
    refund_count: int = 0


@dataclass(frozen=True, slots=True)
class MethodStatistics:
    method: PaymentMethod
    count: int
    amount: int
    success_rate: Decimal


@dataclass(frozen=True, slots=True)
class RefundStatistics:
    total_refunds: int
    total_refunded: int
    refund_rate: Decimal


@dataclass(frozen=True, slots=True)
class ChargeStatistics:
    period: StatisticsPeriod
    since: datetime
    currency: str
    total_charges: int
    total_amount: int
    success_rate: Decimal
    average_transaction: int
    payment_methods: list[MethodStatistics]
    refunds: RefundStatistics


@dataclass(frozen=True, slots=True)
class BalanceAmount:
    currency: str
    amount: int


@dataclass(frozen=True, slots=True)
class Balance:
    available: list[BalanceAmount]
    pending: list[BalanceAmount]


def percentage(part: int, whole: int) -> Decimal:
    if not whole:
        return Decimal("0.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_EVEN)


def summarize(
    totals: Iterable[ChargeTotals],
    period: StatisticsPeriod,
    since: datetime,
    currency: str,
) -> ChargeStatistics:
    """Fold aggregated rows of one currency into period statistics.

    ``amount`` figures count successful charges only; success rates are the
    share of all charges created in the period that settled.
    """
    rows = [row for row in totals if row.currency == currency]

    methods: list[MethodStatistics] = []
    for method in PaymentMethod:
        bucket = [row for row in rows if row.payment_method is method]
        if not bucket:
            continue
        count = sum(row.count for row in bucket)
        succeeded = [row for row in bucket if row.status in SUCCESSFUL_STATUSES]
        methods.append(
            MethodStatistics(
                method=method,
                count=count,
                amount=sum(row.amount for row in succeeded),
                success_rate=percentage(sum(row.count for row in succeeded), count),
            )
        )

    total = sum(row.count for row in rows)
    succeeded = [row for row in rows if row.status in SUCCESSFUL_STATUSES]
    successful = sum(row.count for row in succeeded)
    total_amount = sum(row.amount for row in succeeded)
    average = (
        int((Decimal(total_amount) / successful).quantize(Decimal(1), rounding=ROUND_HALF_EVEN))
        if successful
        else 0
    )
    refunded = [row for row in rows if row.status in REFUNDED_STATUSES]
    return ChargeStatistics(
        period=period,
        since=since,
        currency=currency,
        total_charges=total,
        total_amount=total_amount,
        success_rate=percentage(successful, total),
        average_transaction=average,
        payment_methods=methods,
        refunds=RefundStatistics(
            total_refunds=sum(row.refund_count for row in rows),
            total_refunded=sum(row.amount_refunded for row in rows),
            refund_rate=percentage(sum(row.count for row in refunded), successful),
        ),
    )


def compute_balance(totals: Iterable[ChargeTotals]) -> Balance:
    """Available is settled net minus refunds; pending is the net of in-flight charges."""
    available: dict[str, int] = {}
    pending: dict[str, int] = {}
    for row in totals:
        available.setdefault(row.currency, 0)
        pending.setdefault(row.currency, 0)
        if row.status in SUCCESSFUL_STATUSES:
            available[row.currency] += row.net_amount - row.amount_refunded
        elif row.status in IN_FLIGHT_STATUSES:
            pending[row.currency] += row.net_amount
    return Balance(
        available=[BalanceAmount(currency, amount) for currency, amount in sorted(available.items())],
        pending=[BalanceAmount(currency, amount) for currency, amount in sorted(pending.items())],
    )


__all__ = [
    "Balance",
    "BalanceAmount",
    "ChargeStatistics",
    "ChargeTotals",
    "MethodStatistics",
    "RefundStatistics",
    "StatisticsPeriod",
    "compute_balance",
    "percentage",
    "summarize",
]
