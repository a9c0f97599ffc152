"""Repository protocol for the charge store."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .models import Charge, ChargeFilters, Refund
from .reports import ChargeTotals


class ChargeStore(Protocol):
    async def put(self, charge: Charge) -> Charge:
        ...

    async def get(self, charge_id: str) -> Charge:
        ...

    async def list(self, filters: ChargeFilters) -> Sequence[Charge]:
        ...

    async def get_by_idempotency_key(self, key: str) -> Charge | None:
        ...

    async def get_by_transaction_reference(self, reference: str) -> Charge | None:
        ...

    async def add_refund(self, charge: Charge, refund: Refund) -> Refund:
        """Persist ``refund`` together with the updated ``charge`` in one transaction."""
        ...

    async def list_refunds(self, charge_id: str) -> Sequence[Refund]:
        ...

    async def aggregate(self, created_gte: datetime | None = None) -> Sequence[ChargeTotals]:
        """Counts and sums of charges grouped by currency, method and status."""
        ...
