"""SQL charge store behaviour."""

import dataclasses
from datetime import timedelta

import pytest

from chargeflow.domain.charges.exceptions import ChargeNotFound
from chargeflow.domain.charges.models import (
    ChargeFilters,
    ChargeStatus,
    PaymentMethod,
    Refund,
    RefundReason,
    RefundStatus,
)
from chargeflow.domain.webhooks.models import DeliveryOutcome, WebhookDeliveryRecord
from tests.conftest import charge_request


async def _create(gateway, clock, **overrides):
    charge = await gateway.create_charge(charge_request(webhook_url=None, **overrides))
    clock.advance(1)
    return charge


class TestPutAndGet:
    @pytest.mark.asyncio
    async def test_round_trip_is_field_for_field_equal(self, gateway, store):
        created = await gateway.create_charge(charge_request(payment_method="bitcoin", amount=12345))
        copy = dataclasses.replace(
            created,
            id="ch_roundtrip",
            invoice_id="li_roundtrip",
            transaction_reference="ROUNDTRIP",
            metadata={"order": {"id": 7, "tags": ["a", "b"]}, "gift": False},
            confirmation_count=2,
        )

        await store.put(copy)
        loaded = await store.get("ch_roundtrip")

        assert loaded == copy
        assert loaded.crypto_amount == created.crypto_amount
        assert loaded.instructions == created.instructions

    @pytest.mark.asyncio
    async def test_missing_charge(self, store):
        with pytest.raises(ChargeNotFound):
            await store.get("ch_missing")

    @pytest.mark.asyncio
    async def test_last_write_wins(self, gateway, store):
        charge = await gateway.create_charge(charge_request(webhook_url=None))
        await store.put(dataclasses.replace(charge, status=ChargeStatus.CANCELLED))
        await store.put(dataclasses.replace(charge, status=ChargeStatus.FAILED, failure_reason="declined"))

        loaded = await store.get(charge.id)
        assert loaded.status is ChargeStatus.FAILED
        assert loaded.failure_reason == "declined"

    @pytest.mark.asyncio
    async def test_reads_are_independent_copies(self, gateway, store):
        charge = await gateway.create_charge(charge_request(webhook_url=None))
        first = await store.get(charge.id)
        first.metadata["mutated"] = True
        first.status = ChargeStatus.COMPLETED

        second = await store.get(charge.id)
        assert "mutated" not in second.metadata
        assert second.status is ChargeStatus.PENDING

    @pytest.mark.asyncio
    async def test_duplicate_idempotency_key_returns_existing(self, gateway, store):
        charge = await gateway.create_charge(charge_request(webhook_url=None), idempotency_key="order-1")
        duplicate = dataclasses.replace(
            charge, id="ch_duplicate", invoice_id="li_duplicate", transaction_reference="DUPLICATE"
        )

        stored = await store.put(duplicate)

        assert stored.id == charge.id
        with pytest.raises(ChargeNotFound):
            await store.get("ch_duplicate")

    @pytest.mark.asyncio
    async def test_lookup_by_key_and_reference(self, gateway, store):
        charge = await gateway.create_charge(charge_request(webhook_url=None), idempotency_key="order-2")

        assert (await store.get_by_idempotency_key("order-2")).id == charge.id
        assert (await store.get_by_transaction_reference(charge.transaction_reference)).id == charge.id
        assert await store.get_by_idempotency_key("order-3") is None
        assert await store.get_by_transaction_reference("NOPE") is None


class TestList:
    @pytest.mark.asyncio
    async def test_most_recent_first(self, gateway, store, clock):
        first = await _create(gateway, clock)
        second = await _create(gateway, clock)
        third = await _create(gateway, clock)

        charges = await store.list(ChargeFilters())
        assert [c.id for c in charges] == [third.id, second.id, first.id]

    @pytest.mark.asyncio
    async def test_filters(self, gateway, store, clock):
        ana_pix = await _create(gateway, clock)
        await _create(gateway, clock, customer_name="Bruno Lima", customer_email="bruno@example.com")
        ana_card = await _create(gateway, clock, payment_method="credit_card", amount=10000)
        await gateway.cancel_charge(ana_card.id)

        by_name = await store.list(ChargeFilters(customer="ana"))
        assert {c.id for c in by_name} == {ana_pix.id, ana_card.id}

        by_email = await store.list(ChargeFilters(customer="BRUNO@"))
        assert len(by_email) == 1

        by_method = await store.list(ChargeFilters(payment_method=PaymentMethod.CREDIT_CARD))
        assert [c.id for c in by_method] == [ana_card.id]

        by_status = await store.list(ChargeFilters(statuses=(ChargeStatus.CANCELLED,)))
        assert [c.id for c in by_status] == [ana_card.id]

        in_flight = await store.list(ChargeFilters(statuses=(ChargeStatus.PENDING, ChargeStatus.PROCESSING)))
        assert len(in_flight) == 2

    @pytest.mark.asyncio
    async def test_created_range_and_paging(self, gateway, store, clock):
        start = clock.now()
        charges = [await _create(gateway, clock) for _ in range(5)]

        window = await store.list(
            ChargeFilters(created_gte=start + timedelta(seconds=1), created_lte=start + timedelta(seconds=3))
        )
        assert [c.id for c in window] == [charges[3].id, charges[2].id, charges[1].id]

        page = await store.list(ChargeFilters(limit=2, offset=1))
        assert [c.id for c in page] == [charges[3].id, charges[2].id]


class TestRefundsAndDeliveries:
    @pytest.mark.asyncio
    async def test_add_and_list_refunds(self, gateway, store, clock):
        charge = await gateway.create_charge(charge_request(webhook_url=None))
        updated = dataclasses.replace(charge, status=ChargeStatus.PARTIALLY_REFUNDED, amount_refunded=1000)
        refund = Refund(
            id="re_1",
            charge_id=charge.id,
            amount=1000,
            reason=RefundReason.DUPLICATE,
            status=RefundStatus.SUCCEEDED,
            created_at=clock.now(),
            metadata={"ticket": "T-1"},
        )

        await store.add_refund(updated, refund)

        assert await store.list_refunds(charge.id) == [refund]
        assert (await store.get(charge.id)).amount_refunded == 1000

    @pytest.mark.asyncio
    async def test_delivery_log_is_append_only(self, store, clock):
        records = [
            WebhookDeliveryRecord(
                event_id="evt_1",
                charge_id="ch_1",
                url="https://merchant.example/hooks",
                event_type="charge.pending",
                payload="{}",
                signature="t=1,v1=abc",
                attempt=attempt,
                outcome=DeliveryOutcome.FAILED if attempt < 2 else DeliveryOutcome.DELIVERED,
                created_at=clock.now(),
                response_code=500 if attempt < 2 else 200,
                final=attempt == 2,
            )
            for attempt in (1, 2)
        ]
        saved = [await store.append_delivery(record) for record in records]

        assert all(record.id is not None for record in saved)
        listed = await store.list_deliveries(charge_id="ch_1")
        assert [r.attempt for r in listed] == [1, 2]
        assert listed[-1].final
        assert await store.list_deliveries(event_id="evt_other") == []
