"""Charge status transitions.

The state machine is the only writer of ``Charge.status``. Every transition
is persisted before its ``charge.<status>`` event is handed to the webhook
publisher, so a failed delivery never rolls a charge back. Writes for one
charge are serialised by a per-charge :class:`asyncio.Lock`; different
charges never contend.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from chargeflow.core.clock import Clock
from chargeflow.domain.instructions import InstructionGenerator
from chargeflow.domain.instructions.pix import to_txid
from chargeflow.domain.rates import FeeEngine

from .exceptions import ChargeNotFound, InvalidAmount, InvalidState, RefundExceedsAvailable
from .models import (
    Charge,
    ChargeRequest,
    ChargeStatus,
    MethodFamily,
    PaymentMethod,
    Refund,
    RefundReason,
    RefundStatus,
)
from .repository import ChargeStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ChargeStatus, frozenset[ChargeStatus]] = {
    ChargeStatus.PENDING: frozenset(
        {ChargeStatus.PROCESSING, ChargeStatus.COMPLETED, ChargeStatus.FAILED, ChargeStatus.CANCELLED}
    ),
    ChargeStatus.PROCESSING: frozenset({ChargeStatus.COMPLETED}),
    ChargeStatus.COMPLETED: frozenset({ChargeStatus.REFUNDED, ChargeStatus.PARTIALLY_REFUNDED}),
    ChargeStatus.PARTIALLY_REFUNDED: frozenset({ChargeStatus.PARTIALLY_REFUNDED, ChargeStatus.REFUNDED}),
    ChargeStatus.FAILED: frozenset(),
    ChargeStatus.CANCELLED: frozenset(),
    ChargeStatus.REFUNDED: frozenset(),
}

REFUNDABLE_STATUSES = (ChargeStatus.COMPLETED, ChargeStatus.PARTIALLY_REFUNDED)
SETTLED_STATUSES = (*REFUNDABLE_STATUSES, ChargeStatus.REFUNDED)
REFUND_EVENT = "charge.refunded"
EXTERNALLY_SETTLED_FAMILIES = (MethodFamily.INSTANT, MethodFamily.BANK_SLIP)


class EventPublisher(Protocol):
    def dispatch(self, charge: Charge, event_type: str) -> None:
        ...


@dataclass(frozen=True, slots=True)
class LifecycleTimings:
    pix_settlement: timedelta = timedelta(seconds=10)
    card_processing: timedelta = timedelta(seconds=5)
    card_settlement: timedelta = timedelta(seconds=30)


def can_transition(current: ChargeStatus, new: ChargeStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def event_type_for(status: ChargeStatus) -> str:
    return f"charge.{status.value}"


class ChargeStateMachine:
    def __init__(
        self,
        store: ChargeStore,
        fees: FeeEngine,
        instructions: InstructionGenerator,
        publisher: EventPublisher,
        clock: Clock,
        timings: LifecycleTimings | None = None,
    ) -> None:
        self.store = store
        self.fees = fees
        self.instructions = instructions
        self.publisher = publisher
        self.clock = clock
        self.timings = timings or LifecycleTimings()
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def create(self, request: ChargeRequest, idempotency_key: str | None = None) -> Charge:
        """Validate and persist a new pending charge.

        A repeated ``idempotency_key`` returns the charge created by the first
        request and emits no event.
        """
        method = PaymentMethod.parse(request.payment_method)
        quote = self.fees.quote(request.amount, method)
        currency = (request.currency or "").strip().upper()
        if not currency:
            raise InvalidAmount("currency is required")

        if idempotency_key is None:
            return await self._create(request, method, quote.fee, currency, None)

        async with self._lock_for(f"idempotency:{idempotency_key}"):
            existing = await self.store.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                logger.info("Idempotent replay of %s for key %s", existing.id, idempotency_key)
                return existing
            return await self._create(request, method, quote.fee, currency, idempotency_key)

    async def _create(
        self,
        request: ChargeRequest,
        method: PaymentMethod,
        fee: int,
        currency: str,
        idempotency_key: Optional[str],
    ) -> Charge:
        now = self.clock.now()
        token = uuid.uuid4().hex
        charge_id = f"ch_{token}"
        invoice_id = f"li_{uuid.uuid4().hex}"
        charge = Charge(
            id=charge_id,
            amount=request.amount,
            currency=currency,
            payment_method=method,
            status=ChargeStatus.PENDING,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            merchant_id=self.instructions.merchant.merchant_id,
            processing_fee=fee,
            net_amount=request.amount - fee,
            invoice_id=invoice_id,
            payment_url=self.instructions.invoice_url(invoice_id),
            receipt_url=self.instructions.receipt_url(charge_id),
            transaction_reference=to_txid(token),
            created_at=now,
            updated_at=now,
            description=request.description,
            webhook_url=request.webhook_url,
            metadata=dict(request.metadata or {}),
            idempotency_key=idempotency_key,
        )
        if method.is_crypto:
            rate = self.fees.table.get(method)
            charge.crypto_address = rate.address
            charge.crypto_amount = self.fees.to_crypto_amount(request.amount, method)
            charge.confirmation_count = 0
            charge.required_confirmations = rate.confirmations or 1

        charge.instructions = self.instructions.build_instructions(charge)
        qr_codes = self.instructions.qr_codes(charge)
        charge.qr_code_pix = qr_codes.get("pix")
        charge.qr_code_crypto = qr_codes.get("crypto")

        stored = await self.store.put(charge)
        if stored.id != charge.id:
            # a concurrent writer won the idempotency key
            return stored
        logger.info(
            "Created charge %s (%s, %s %s, fee %s)",
            stored.id,
            method.value,
            stored.amount,
            stored.currency,
            stored.processing_fee,
        )
        self.publisher.dispatch(stored, event_type_for(stored.status))
        return stored

    def _apply(self, charge: Charge, new_status: ChargeStatus, now: datetime) -> None:
        if not can_transition(charge.status, new_status):
            raise InvalidState(
                f"charge {charge.id} cannot move from {charge.status.value} to {new_status.value}"
            )
        if new_status is ChargeStatus.PROCESSING and charge.payment_method.family is not MethodFamily.CARD:
            raise InvalidState(f"{charge.payment_method.value} charges never enter processing")
        previous = charge.status
        charge.status = new_status
        charge.updated_at = now
        if new_status is ChargeStatus.COMPLETED:
            charge.captured_at = now
            charge.captured_amount = charge.amount
        logger.info("Charge %s: %s -> %s", charge.id, previous.value, new_status.value)

    async def _transition(self, charge: Charge, new_status: ChargeStatus, **changes: Any) -> Charge:
        now = self.clock.now()
        self._apply(charge, new_status, now)
        for name, value in changes.items():
            setattr(charge, name, value)
        stored = await self.store.put(charge)
        self.publisher.dispatch(stored, event_type_for(new_status))
        return stored

    async def _advance_locked(self, charge: Charge) -> Charge:
        elapsed = self.clock.now() - charge.created_at
        family = charge.payment_method.family

        if family is MethodFamily.INSTANT:
            if charge.status is ChargeStatus.PENDING and elapsed >= self.timings.pix_settlement:
                charge = await self._transition(charge, ChargeStatus.COMPLETED)
        elif family is MethodFamily.CARD:
            if charge.status is ChargeStatus.PENDING and elapsed >= self.timings.card_processing:
                charge = await self._transition(charge, ChargeStatus.PROCESSING)
            if charge.status is ChargeStatus.PROCESSING and elapsed >= self.timings.card_settlement:
                charge = await self._transition(charge, ChargeStatus.COMPLETED)
        elif family is MethodFamily.CRYPTO:
            required = charge.required_confirmations or 1
            if charge.status is ChargeStatus.PENDING and (charge.confirmation_count or 0) >= required:
                charge = await self._transition(charge, ChargeStatus.COMPLETED)
        # bank slips only complete through confirm_settlement
        return charge

    async def advance(self, charge_id: str) -> Charge:
        """Apply every time- or confirmation-driven transition that is due."""
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            return await self._advance_locked(charge)

    async def record_confirmations(
        self,
        charge_id: str,
        confirmations: int | None = None,
        *,
        allow_overflow: bool = False,
    ) -> Charge:
        """Record network confirmations for a crypto charge and advance it.

        ``None`` counts one more confirmation. The count never decreases and
        is clamped to ``required_confirmations`` unless ``allow_overflow``.
        Charges that already left ``pending`` are returned unchanged.
        """
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            if not charge.is_crypto:
                raise InvalidState(f"{charge.payment_method.value} charges have no network confirmations")
            if charge.status is not ChargeStatus.PENDING:
                return charge

            current = charge.confirmation_count or 0
            required = charge.required_confirmations or 1
            target = current + 1 if confirmations is None else confirmations
            updated = max(current, target)
            if not allow_overflow:
                updated = min(updated, required)
            if updated != current:
                charge.confirmation_count = updated
                charge.updated_at = self.clock.now()
                charge = await self.store.put(charge)
                logger.info("Charge %s has %s/%s confirmations", charge.id, updated, required)
            return await self._advance_locked(charge)

    async def confirm_settlement(self, charge_id: str) -> Charge:
        """Complete a charge after an external settlement notification.

        Only PIX and bank slip charges settle this way; card and crypto
        charges follow their own processing and confirmation rules. Replayed
        notifications for an already settled charge are no-ops.
        """
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            if charge.payment_method.family not in EXTERNALLY_SETTLED_FAMILIES:
                raise InvalidState(
                    f"{charge.payment_method.value} charges are not settled by external notification"
                )
            if charge.status in SETTLED_STATUSES:
                return charge
            return await self._transition(charge, ChargeStatus.COMPLETED)

    async def confirm_settlement_by_reference(self, reference: str) -> Charge:
        charge = await self.store.get_by_transaction_reference(to_txid(reference))
        if charge is None:
            raise ChargeNotFound(f"no charge with transaction reference {reference!r}")
        return await self.confirm_settlement(charge.id)

    async def cancel(self, charge_id: str) -> Charge:
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            return await self._transition(charge, ChargeStatus.CANCELLED)

    async def fail(self, charge_id: str, reason: str) -> Charge:
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            return await self._transition(charge, ChargeStatus.FAILED, failure_reason=reason)

    async def refund(
        self,
        charge_id: str,
        amount: int | None = None,
        reason: RefundReason | str = RefundReason.REQUESTED_BY_CUSTOMER,
        metadata: dict[str, Any] | None = None,
    ) -> tuple[Charge, Refund]:
        """Refund part or all of the remaining balance of a settled charge.

        The refundable balance is ``net_amount - amount_refunded``; omitting
        ``amount`` refunds all of it.
        """
        reason = RefundReason(reason)
        async with self._lock_for(charge_id):
            charge = await self.store.get(charge_id)
            if charge.status not in REFUNDABLE_STATUSES:
                raise InvalidState(f"charge {charge.id} is {charge.status.value} and cannot be refunded")

            available = charge.refundable_amount
            if amount is None:
                amount = available
            if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
                raise InvalidAmount(f"refund amount must be a positive integer, got {amount!r}")
            if amount > available:
                raise RefundExceedsAvailable(
                    f"refund of {amount} exceeds the refundable balance of {available} on {charge.id}"
                )

            now = self.clock.now()
            refunded_total = charge.amount_refunded + amount
            new_status = (
                ChargeStatus.REFUNDED if refunded_total >= charge.net_amount else ChargeStatus.PARTIALLY_REFUNDED
            )
            self._apply(charge, new_status, now)
            charge.amount_refunded = refunded_total
            refund = Refund(
                id=f"re_{uuid.uuid4().hex}",
                charge_id=charge.id,
                amount=amount,
                reason=reason,
                status=RefundStatus.SUCCEEDED,
                created_at=now,
                metadata=dict(metadata or {}),
            )
            refund = await self.store.add_refund(charge, refund)
            charge = await self.store.get(charge.id)
            logger.info("Refunded %s of charge %s (%s remaining)", amount, charge.id, charge.refundable_amount)
            self.publisher.dispatch(charge, REFUND_EVENT)
            return charge, refund


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ChargeStateMachine",
    "EventPublisher",
    "LifecycleTimings",
    "can_transition",
    "event_type_for",
]
