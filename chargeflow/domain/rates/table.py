"""Per-method fee schedule and crypto settlement parameters."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from chargeflow.domain.charges.exceptions import UnsupportedMethod
from chargeflow.domain.charges.models import PaymentMethod

# amounts are in minor units of the charge currency
MAX_AMOUNT = 99_999_999_999


@dataclass(frozen=True, slots=True)
class MethodRate:
    method: PaymentMethod
    name: str
    percentage_rate: Decimal
    fixed_rate: int
    processing_time: str
    min_amount: int = 1
    max_amount: int = MAX_AMOUNT
    enabled: bool = True
    address: Optional[str] = None
    network: Optional[str] = None
    confirmations: Optional[int] = None
    exchange_rate: Optional[Decimal] = None


DEFAULT_RATES: tuple[MethodRate, ...] = (
    MethodRate(PaymentMethod.PIX, "PIX", Decimal("0.99"), 0, "instant"),
    MethodRate(PaymentMethod.CREDIT_CARD, "Credit card", Decimal("3.49"), 39, "2-3 business days"),
    MethodRate(PaymentMethod.DEBIT_CARD, "Debit card", Decimal("1.99"), 19, "instant"),
    MethodRate(PaymentMethod.BOLETO, "Bank slip", Decimal("0"), 250, "3 business days"),
    MethodRate(
        PaymentMethod.USDT,
        "USDT (Tether)",
        Decimal("0.5"),
        0,
        "10-30 minutes",
        address="TQn9Y2khEsLJW1ChVWFMSMeRDow5KcbLSE",
        network="TRC20",
        confirmations=1,
        exchange_rate=Decimal("1"),
    ),
    MethodRate(
        PaymentMethod.BITCOIN,
        "Bitcoin (BTC)",
        Decimal("0.8"),
        0,
        "30-60 minutes",
        address="1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa",
        network="Bitcoin",
        confirmations=3,
        exchange_rate=Decimal("0.000023"),
    ),
    MethodRate(
        PaymentMethod.ETHEREUM,
        "Ethereum (ETH)",
        Decimal("0.6"),
        0,
        "5-15 minutes",
        address="0x742d35Cc6634C0532925a3b8D4C9db96C4b4d8b6",
        network="Ethereum",
        confirmations=12,
        exchange_rate=Decimal("0.0004"),
    ),
    MethodRate(
        PaymentMethod.BNB,
        "BNB (Binance Coin)",
        Decimal("0.4"),
        0,
        "3-10 minutes",
        address="bnb1grpf0955h0ykzq3ar5nmum7y6gdfl6lxfn46h2",
        network="BSC",
        confirmations=15,
        exchange_rate=Decimal("0.003"),
    ),
)

_DECIMAL_FIELDS = {"percentage_rate", "exchange_rate"}


class RateTable:
    """Immutable lookup of the fee schedule, built once per process."""

    def __init__(self, rates: Iterable[MethodRate]) -> None:
        self._rates = {rate.method: rate for rate in rates}

    @classmethod
    def default(cls, overrides: Mapping[str, Mapping[str, Any]] | None = None) -> "RateTable":
        overrides = overrides or {}
        unknown = set(overrides) - {method.value for method in PaymentMethod}
        if unknown:
            raise ValueError(f"rate overrides for unknown methods: {sorted(unknown)}")
        rates = []
        for rate in DEFAULT_RATES:
            changes = dict(overrides.get(rate.method.value, {}))
            for name in _DECIMAL_FIELDS & changes.keys():
                changes[name] = Decimal(str(changes[name]))
            rates.append(dataclasses.replace(rate, **changes))
        return cls(rates)

    def get(self, method: PaymentMethod | str) -> MethodRate:
        parsed = PaymentMethod.parse(method)
        rate = self._rates.get(parsed)
        if rate is None or not rate.enabled:
            raise UnsupportedMethod(f"payment method {parsed.value!r} is not enabled")
        return rate

    def methods(self) -> list[MethodRate]:
        return [rate for rate in self._rates.values() if rate.enabled]


__all__ = ["DEFAULT_RATES", "MethodRate", "RateTable"]
