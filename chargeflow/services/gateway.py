"""Externally consumed charge operations composed over the state machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from chargeflow.domain.charges.models import (
    Charge,
    ChargeFilters,
    ChargeRequest,
    Invoice,
    Refund,
    RefundReason,
)
from chargeflow.domain.charges.reports import (
    Balance,
    ChargeStatistics,
    StatisticsPeriod,
    compute_balance,
    summarize,
)
from chargeflow.domain.charges.repository import ChargeStore
from chargeflow.domain.charges.state_machine import ChargeStateMachine
from chargeflow.domain.instructions import InstructionGenerator
from chargeflow.domain.rates import MethodRate, RateTable
from chargeflow.domain.webhooks import DeliveryLog, WebhookDeliveryRecord


@dataclass(slots=True)
class PaymentGateway:
    machine: ChargeStateMachine
    store: ChargeStore
    deliveries: DeliveryLog
    instructions: InstructionGenerator
    rates: RateTable

    async def create_charge(self, request: ChargeRequest, idempotency_key: str | None = None) -> Charge:
        return await self.machine.create(request, idempotency_key)

    async def create_invoice(self, request: ChargeRequest, idempotency_key: str | None = None) -> Invoice:
        """Create a charge and bundle everything a payer needs to settle it."""
        charge = await self.machine.create(request, idempotency_key)
        return Invoice(
            charge=charge,
            payment_url=charge.payment_url,
            qr_codes=self.instructions.qr_codes(charge),
            instructions=charge.instructions or self.instructions.build_instructions(charge),
            auto_capture_enabled=charge.auto_capture,
            webhook_configured=bool(charge.webhook_url),
        )

    async def get_charge(self, charge_id: str) -> Charge:
        return await self.store.get(charge_id)

    async def list_charges(self, filters: ChargeFilters | None = None) -> Sequence[Charge]:
        return await self.store.list(filters or ChargeFilters())

    async def create_refund(
        self,
        charge_id: str,
        amount: int | None = None,
        reason: RefundReason | str = RefundReason.REQUESTED_BY_CUSTOMER,
        metadata: dict[str, Any] | None = None,
    ) -> Refund:
        _, refund = await self.machine.refund(charge_id, amount, reason, metadata)
        return refund

    async def poll_status(self, charge_id: str) -> Charge:
        await self.machine.advance(charge_id)
        return await self.store.get(charge_id)

    async def cancel_charge(self, charge_id: str) -> Charge:
        return await self.machine.cancel(charge_id)

    async def fail_charge(self, charge_id: str, reason: str) -> Charge:
        return await self.machine.fail(charge_id, reason)

    async def record_confirmations(
        self,
        charge_id: str,
        confirmations: int | None = None,
        *,
        allow_overflow: bool = False,
    ) -> Charge:
        return await self.machine.record_confirmations(
            charge_id, confirmations, allow_overflow=allow_overflow
        )

    async def confirm_settlement_by_reference(self, reference: str) -> Charge:
        return await self.machine.confirm_settlement_by_reference(reference)

    async def list_refunds(self, charge_id: str) -> Sequence[Refund]:
        await self.store.get(charge_id)
        return await self.store.list_refunds(charge_id)

    async def list_webhook_deliveries(self, charge_id: str) -> Sequence[WebhookDeliveryRecord]:
        await self.store.get(charge_id)
        return await self.deliveries.list_deliveries(charge_id=charge_id)

    def payment_methods(self) -> list[MethodRate]:
        return self.rates.methods()

    async def statistics(
        self,
        period: StatisticsPeriod | str = StatisticsPeriod.TODAY,
        currency: str = "BRL",
    ) -> ChargeStatistics:
        """Totals, success rates per method and refund figures for charges created in ``period``."""
        period = StatisticsPeriod(period)
        since = period.since(self.machine.clock.now())
        totals = await self.store.aggregate(created_gte=since)
        return summarize(totals, period, since, currency.strip().upper())

    async def balance(self) -> Balance:
        return compute_balance(await self.store.aggregate())


__all__ = ["PaymentGateway"]
