"""Webhook signing, delivery, retry and ordering."""

import json
from datetime import timedelta

import pytest

from chargeflow.core.crypto import WebhookSigner
from chargeflow.domain.charges.models import ChargeStatus
from chargeflow.domain.webhooks.models import DeliveryOutcome
from tests.conftest import DOWN_URL, HOOK_URL, WEBHOOK_SECRET, charge_request


class TestWebhookSigner:
    def test_sign_and_verify(self):
        signer = WebhookSigner(WEBHOOK_SECRET)
        header = signer.sign(b'{"id":"evt_1"}', timestamp=1760875200)

        assert header.startswith("t=1760875200,v1=")
        assert signer.verify(b'{"id":"evt_1"}', header, now=1760875200)

    def test_tampered_body_fails(self):
        signer = WebhookSigner(WEBHOOK_SECRET)
        header = signer.sign(b'{"amount":100}', timestamp=1760875200)
        assert not signer.verify(b'{"amount":900}', header, now=1760875200)

    def test_other_secret_fails(self):
        header = WebhookSigner("whsec_other_secret").sign(b"{}", timestamp=1760875200)
        assert not WebhookSigner(WEBHOOK_SECRET).verify(b"{}", header, now=1760875200)

    def test_stale_timestamp_fails(self):
        signer = WebhookSigner(WEBHOOK_SECRET)
        header = signer.sign(b"{}", timestamp=1760875200)
        assert not signer.verify(b"{}", header, tolerance_seconds=300, now=1760875200 + 301)

    @pytest.mark.parametrize("header", ["", "garbage", "t=abc,v1=00", "v1=00"])
    def test_malformed_header(self, header):
        assert not WebhookSigner(WEBHOOK_SECRET).verify(b"{}", header)

    def test_empty_secret(self):
        with pytest.raises(ValueError):
            WebhookSigner("")


class TestDelivery:
    @pytest.mark.asyncio
    async def test_signed_envelope(self, gateway, container, receiver, clock):
        charge = await gateway.create_charge(charge_request())
        await container.dispatcher.drain()

        assert len(receiver.requests) == 1
        request = receiver.requests[0]
        assert str(request.url) == HOOK_URL
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["X-Chargeflow-Event"] == "charge.pending"

        timestamp = int(clock.now().timestamp())
        signature = request.headers["X-Chargeflow-Signature"]
        assert WebhookSigner(WEBHOOK_SECRET).verify(request.content, signature, now=timestamp)

        envelope = json.loads(request.content)
        assert set(envelope) == {"id", "type", "data", "created", "livemode"}
        assert envelope["id"].startswith("evt_")
        assert envelope["id"] == request.headers["X-Chargeflow-Delivery"]
        assert envelope["created"] == timestamp
        assert envelope["livemode"] is False
        assert envelope["data"]["object"]["id"] == charge.id
        assert envelope["data"]["object"]["status"] == "pending"
        assert envelope["data"]["object"]["processing_fee"] == 148

    @pytest.mark.asyncio
    async def test_successful_attempt_is_logged(self, gateway, container, store):
        charge = await gateway.create_charge(charge_request())
        await container.dispatcher.drain()

        [record] = await store.list_deliveries(charge_id=charge.id)
        assert record.outcome is DeliveryOutcome.DELIVERED
        assert record.response_code == 200
        assert record.attempt == 1
        assert record.final is True
        assert record.event_type == "charge.pending"
        assert json.loads(record.payload)["data"]["object"]["id"] == charge.id

    @pytest.mark.asyncio
    async def test_unreachable_endpoint_retries_then_gives_up(self, gateway, container, store, sleeper):
        charge = await gateway.create_charge(charge_request(webhook_url=DOWN_URL))
        await container.dispatcher.drain()

        records = await store.list_deliveries(charge_id=charge.id)
        assert [r.attempt for r in records] == [1, 2, 3]
        assert {r.outcome for r in records} == {DeliveryOutcome.FAILED}
        assert [r.final for r in records] == [False, False, True]
        assert all("ConnectError" in r.error for r in records)
        assert len({r.event_id for r in records}) == 1
        assert sleeper.calls == [2.0, 4.0]
        gaps = [later.created_at - earlier.created_at for earlier, later in zip(records, records[1:])]
        assert gaps == [timedelta(seconds=2), timedelta(seconds=4)]

        unchanged = await store.get(charge.id)
        assert unchanged.status is ChargeStatus.PENDING

    @pytest.mark.asyncio
    async def test_server_error_then_success(self, gateway, container, store, receiver, sleeper):
        receiver.scripted = [503]
        charge = await gateway.create_charge(charge_request())
        await container.dispatcher.drain()

        records = await store.list_deliveries(charge_id=charge.id)
        assert [(r.attempt, r.outcome, r.response_code, r.final) for r in records] == [
            (1, DeliveryOutcome.FAILED, 503, False),
            (2, DeliveryOutcome.DELIVERED, 200, True),
        ]
        assert sleeper.calls == [2.0]

    @pytest.mark.asyncio
    async def test_client_error_is_a_failed_attempt(self, gateway, container, store, receiver):
        receiver.default_status = 410
        charge = await gateway.create_charge(charge_request())
        await container.dispatcher.drain()

        records = await store.list_deliveries(charge_id=charge.id)
        assert len(records) == 3
        assert {r.response_code for r in records} == {410}

    @pytest.mark.asyncio
    async def test_no_webhook_url(self, gateway, container, store, receiver):
        charge = await gateway.create_charge(charge_request(webhook_url=None))
        assert container.dispatcher.dispatch(charge, "charge.pending") is None
        await container.dispatcher.drain()

        assert receiver.requests == []
        assert await store.list_deliveries(charge_id=charge.id) == []

    @pytest.mark.asyncio
    async def test_event_body_is_a_snapshot(self, gateway, container, receiver):
        charge = await gateway.create_charge(charge_request())
        charge.status = ChargeStatus.FAILED
        await container.dispatcher.drain()

        assert receiver.events()[0]["data"]["object"]["status"] == "pending"


class TestOrdering:
    @pytest.mark.asyncio
    async def test_events_initiated_in_transition_order(self, gateway, container, receiver, clock):
        charge = await gateway.create_charge(charge_request(payment_method="credit_card", amount=10000))
        clock.advance(30)
        await gateway.poll_status(charge.id)
        await gateway.create_refund(charge.id, 1000)
        await container.dispatcher.drain()

        assert receiver.event_types() == [
            "charge.pending",
            "charge.processing",
            "charge.completed",
            "charge.refunded",
        ]
        objects = [event["data"]["object"] for event in receiver.events()]
        assert [o["status"] for o in objects] == ["pending", "processing", "completed", "partially_refunded"]

    @pytest.mark.asyncio
    async def test_retry_does_not_block_later_initiation(self, gateway, container, receiver, clock):
        receiver.scripted = [500]
        charge = await gateway.create_charge(charge_request())
        clock.advance(10)
        await gateway.poll_status(charge.id)
        await container.dispatcher.drain()

        types = receiver.event_types()
        assert types[0] == "charge.pending"
        assert sorted(types) == ["charge.completed", "charge.pending", "charge.pending"]

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, container):
        await container.dispatcher.aclose()
        await container.dispatcher.aclose()
        assert container.dispatcher.pending == 0
