"""Processing fee and crypto conversion calculations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Protocol

from chargeflow.domain.charges.exceptions import InvalidAmount, UnsupportedMethod
from chargeflow.domain.charges.models import PaymentMethod

from .table import RateTable

CRYPTO_QUANTUM = Decimal("0.00000001")
MINOR_UNITS_PER_MAJOR = Decimal(100)


class RateSource(Protocol):
    def get_rate(self, method: PaymentMethod) -> Decimal:
        ...


class StaticRateSource:
    """Exchange rates read from the fee schedule instead of a live feed."""

    def __init__(self, table: RateTable) -> None:
        self._table = table

    def get_rate(self, method: PaymentMethod) -> Decimal:
        rate = self._table.get(method)
        if rate.exchange_rate is None:
            raise UnsupportedMethod(f"{rate.method.value} has no crypto conversion rate")
        return rate.exchange_rate


@dataclass(frozen=True, slots=True)
class FeeQuote:
    amount: int
    fee: int
    net_amount: int


class FeeEngine:
    def __init__(self, table: RateTable, rate_source: RateSource | None = None) -> None:
        self.table = table
        self.rate_source = rate_source or StaticRateSource(table)

    def compute_fee(self, amount: int, method: PaymentMethod | str) -> int:
        rate = self.table.get(method)
        raw = Decimal(amount) * rate.percentage_rate / Decimal(100) + Decimal(rate.fixed_rate)
        return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))

    def quote(self, amount: int, method: PaymentMethod | str) -> FeeQuote:
        """Validate ``amount`` for ``method`` and split it into fee and net amount."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"amount must be a positive integer in minor units, got {amount!r}")
        rate = self.table.get(method)
        if amount < rate.min_amount or amount > rate.max_amount:
            raise InvalidAmount(
                f"amount {amount} is outside the {rate.method.value} range "
                f"[{rate.min_amount}, {rate.max_amount}]"
            )
        fee = self.compute_fee(amount, rate.method)
        if fee >= amount:
            raise InvalidAmount(
                f"amount {amount} does not cover the {rate.method.value} processing fee of {fee}"
            )
        return FeeQuote(amount=amount, fee=fee, net_amount=amount - fee)

    def to_crypto_amount(self, amount: int, method: PaymentMethod | str) -> Decimal:
        parsed = PaymentMethod.parse(method)
        if not parsed.is_crypto:
            raise UnsupportedMethod(f"{parsed.value} is not a crypto payment method")
        rate = self.rate_source.get_rate(parsed)
        major = Decimal(amount) / MINOR_UNITS_PER_MAJOR
        return (major * rate).quantize(CRYPTO_QUANTUM, rounding=ROUND_HALF_EVEN)


__all__ = ["FeeEngine", "FeeQuote", "RateSource", "StaticRateSource"]
