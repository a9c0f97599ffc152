"""SQLAlchemy implementation of the charge store and delivery log"""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chargeflow.core.clock import as_utc
from chargeflow.domain.charges.exceptions import ChargeNotFound
from chargeflow.domain.charges.reports import ChargeTotals
from chargeflow.domain.charges.models import (
    Charge,
    ChargeFilters,
    ChargeStatus,
    PaymentInstructions,
    PaymentMethod,
    Refund,
    RefundReason,
    RefundStatus,
)
from chargeflow.domain.webhooks.models import DeliveryOutcome, WebhookDeliveryRecord
from chargeflow.infrastructure.database.models import ChargeRecord, RefundRecord, WebhookDeliveryLog
from chargeflow.infrastructure.database.session import session_scope


def _dump_json(value: Any) -> str | None:
    return json.dumps(value, ensure_ascii=False) if value is not None else None


def _load_json(value: str | None) -> Any:
    return json.loads(value) if value else None


class SqlChargeStore:
    """Charge store where every write is its own committed transaction.

    Reads always build new domain objects, so callers never share state.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def put(self, charge: Charge) -> Charge:
        try:
            async with session_scope(self.session_factory) as session:
                await session.merge(self._to_record(charge))
        except IntegrityError:
            if charge.idempotency_key is None:
                raise
            existing = await self.get_by_idempotency_key(charge.idempotency_key)
            if existing is None:
                raise
            return existing
        return await self.get(charge.id)

    async def get(self, charge_id: str) -> Charge:
        async with self.session_factory() as session:
            record = await session.get(ChargeRecord, charge_id)
            if record is None:
                raise ChargeNotFound(f"charge {charge_id!r} not found")
            return self._to_domain(record)

    async def list(self, filters: ChargeFilters) -> Sequence[Charge]:
        stmt = select(ChargeRecord)
        if filters.customer:
            pattern = f"%{filters.customer}%"
            stmt = stmt.where(
                or_(ChargeRecord.customer_name.ilike(pattern), ChargeRecord.customer_email.ilike(pattern))
            )
        if filters.payment_method is not None:
            stmt = stmt.where(ChargeRecord.payment_method == filters.payment_method.value)
        if filters.statuses:
            stmt = stmt.where(ChargeRecord.status.in_([status.value for status in filters.statuses]))
        if filters.created_gte is not None:
            stmt = stmt.where(ChargeRecord.created_at >= as_utc(filters.created_gte))
        if filters.created_lte is not None:
            stmt = stmt.where(ChargeRecord.created_at <= as_utc(filters.created_lte))
        stmt = (
            stmt.order_by(desc(ChargeRecord.created_at), desc(ChargeRecord.id))
            .offset(filters.offset)
            .limit(filters.limit)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_domain(record) for record in result.scalars().all()]

    async def get_by_idempotency_key(self, key: str) -> Charge | None:
        return await self._first(select(ChargeRecord).where(ChargeRecord.idempotency_key == key))

    async def get_by_transaction_reference(self, reference: str) -> Charge | None:
        return await self._first(select(ChargeRecord).where(ChargeRecord.transaction_reference == reference))

    async def _first(self, stmt) -> Charge | None:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            record = result.scalars().first()
            return self._to_domain(record) if record else None

    async def aggregate(self, created_gte: datetime | None = None) -> Sequence[ChargeTotals]:
        refund_counts = (
            select(RefundRecord.charge_id, func.count(RefundRecord.id).label("refund_count"))
            .group_by(RefundRecord.charge_id)
            .subquery()
        )
        stmt = (
            select(
                ChargeRecord.currency,
                ChargeRecord.payment_method,
                ChargeRecord.status,
                func.count(ChargeRecord.id),
                func.coalesce(func.sum(ChargeRecord.amount), 0),
                func.coalesce(func.sum(ChargeRecord.net_amount), 0),
                func.coalesce(func.sum(ChargeRecord.amount_refunded), 0),
                func.coalesce(func.sum(refund_counts.c.refund_count), 0),
            )
            .outerjoin(refund_counts, refund_counts.c.charge_id == ChargeRecord.id)
            .group_by(ChargeRecord.currency, ChargeRecord.payment_method, ChargeRecord.status)
        )
        if created_gte is not None:
            stmt = stmt.where(ChargeRecord.created_at >= as_utc(created_gte))
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [
                ChargeTotals(
                    currency=currency,
                    payment_method=PaymentMethod(method),
                    status=ChargeStatus(status),
                    count=int(count),
                    amount=int(amount),
                    net_amount=int(net_amount),
                    amount_refunded=int(refunded),
                    refund_count=int(refunds),
                )
                for currency, method, status, count, amount, net_amount, refunded, refunds in result.all()
            ]

    async def add_refund(self, charge: Charge, refund: Refund) -> Refund:
        async with session_scope(self.session_factory) as session:
            await session.merge(self._to_record(charge))
            session.add(
                RefundRecord(
                    id=refund.id,
                    charge_id=refund.charge_id,
                    amount=refund.amount,
                    reason=refund.reason.value,
                    status=refund.status.value,
                    meta=_dump_json(refund.metadata),
                    created_at=as_utc(refund.created_at),
                )
            )
        return refund

    async def list_refunds(self, charge_id: str) -> Sequence[Refund]:
        stmt = (
            select(RefundRecord)
            .where(RefundRecord.charge_id == charge_id)
            .order_by(RefundRecord.created_at, RefundRecord.id)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_refund(record) for record in result.scalars().all()]

    async def append_delivery(self, record: WebhookDeliveryRecord) -> WebhookDeliveryRecord:
        async with session_scope(self.session_factory) as session:
            row = WebhookDeliveryLog(
                event_id=record.event_id,
                charge_id=record.charge_id,
                url=record.url,
                event_type=record.event_type,
                payload=record.payload,
                signature=record.signature,
                attempt=record.attempt,
                outcome=record.outcome.value,
                response_code=record.response_code,
                error=record.error,
                final=record.final,
                created_at=as_utc(record.created_at),
            )
            session.add(row)
            await session.flush()
            row_id = row.id
        return dataclasses.replace(record, id=row_id)

    async def list_deliveries(
        self,
        charge_id: str | None = None,
        event_id: str | None = None,
    ) -> Sequence[WebhookDeliveryRecord]:
        stmt = select(WebhookDeliveryLog)
        if charge_id is not None:
            stmt = stmt.where(WebhookDeliveryLog.charge_id == charge_id)
        if event_id is not None:
            stmt = stmt.where(WebhookDeliveryLog.event_id == event_id)
        stmt = stmt.order_by(WebhookDeliveryLog.id)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [self._to_delivery(row) for row in result.scalars().all()]

    @staticmethod
    def _to_record(charge: Charge) -> ChargeRecord:
        return ChargeRecord(
            id=charge.id,
            amount=charge.amount,
            currency=charge.currency,
            payment_method=charge.payment_method.value,
            status=charge.status.value,
            customer_name=charge.customer_name,
            customer_email=charge.customer_email,
            merchant_id=charge.merchant_id,
            description=charge.description,
            webhook_url=charge.webhook_url,
            meta=_dump_json(charge.metadata),
            processing_fee=charge.processing_fee,
            net_amount=charge.net_amount,
            invoice_id=charge.invoice_id,
            payment_url=charge.payment_url,
            receipt_url=charge.receipt_url,
            transaction_reference=charge.transaction_reference,
            crypto_address=charge.crypto_address,
            crypto_amount=str(charge.crypto_amount) if charge.crypto_amount is not None else None,
            confirmation_count=charge.confirmation_count,
            required_confirmations=charge.required_confirmations,
            qr_code_pix=charge.qr_code_pix,
            qr_code_crypto=charge.qr_code_crypto,
            instructions=_dump_json(charge.instructions.to_dict()) if charge.instructions else None,
            auto_capture=charge.auto_capture,
            captured_at=as_utc(charge.captured_at),
            captured_amount=charge.captured_amount,
            amount_refunded=charge.amount_refunded,
            idempotency_key=charge.idempotency_key,
            failure_reason=charge.failure_reason,
            created_at=as_utc(charge.created_at),
            updated_at=as_utc(charge.updated_at),
        )

    @staticmethod
    def _to_domain(record: ChargeRecord) -> Charge:
        instructions = _load_json(record.instructions)
        return Charge(
            id=record.id,
            amount=record.amount,
            currency=record.currency,
            payment_method=PaymentMethod(record.payment_method),
            status=ChargeStatus(record.status),
            customer_name=record.customer_name,
            customer_email=record.customer_email,
            merchant_id=record.merchant_id,
            processing_fee=record.processing_fee,
            net_amount=record.net_amount,
            invoice_id=record.invoice_id,
            payment_url=record.payment_url,
            receipt_url=record.receipt_url,
            transaction_reference=record.transaction_reference,
            created_at=as_utc(record.created_at),
            updated_at=as_utc(record.updated_at),
            description=record.description,
            webhook_url=record.webhook_url,
            metadata=_load_json(record.meta) or {},
            crypto_address=record.crypto_address,
            crypto_amount=Decimal(record.crypto_amount) if record.crypto_amount is not None else None,
            confirmation_count=record.confirmation_count,
            required_confirmations=record.required_confirmations,
            qr_code_pix=record.qr_code_pix,
            qr_code_crypto=record.qr_code_crypto,
            instructions=PaymentInstructions.from_dict(instructions) if instructions else None,
            auto_capture=record.auto_capture,
            captured_at=as_utc(record.captured_at),
            captured_amount=record.captured_amount,
            amount_refunded=record.amount_refunded,
            idempotency_key=record.idempotency_key,
            failure_reason=record.failure_reason,
        )

    @staticmethod
    def _to_refund(record: RefundRecord) -> Refund:
        return Refund(
            id=record.id,
            charge_id=record.charge_id,
            amount=record.amount,
            reason=RefundReason(record.reason),
            status=RefundStatus(record.status),
            created_at=as_utc(record.created_at),
            metadata=_load_json(record.meta) or {},
        )

    @staticmethod
    def _to_delivery(row: WebhookDeliveryLog) -> WebhookDeliveryRecord:
        return WebhookDeliveryRecord(
            id=row.id,
            event_id=row.event_id,
            charge_id=row.charge_id,
            url=row.url,
            event_type=row.event_type,
            payload=row.payload,
            signature=row.signature,
            attempt=row.attempt,
            outcome=DeliveryOutcome(row.outcome),
            created_at=as_utc(row.created_at),
            response_code=row.response_code,
            error=row.error,
            final=row.final,
        )


__all__ = ["SqlChargeStore"]
