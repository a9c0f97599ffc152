"""Public facade operations."""

from decimal import Decimal

import pytest

from chargeflow.domain.charges.exceptions import ChargeNotFound
from chargeflow.domain.charges.models import ChargeFilters, ChargeStatus, PaymentMethod
from tests.conftest import charge_request


class TestInvoices:
    @pytest.mark.asyncio
    async def test_pix_invoice(self, gateway):
        invoice = await gateway.create_invoice(charge_request())

        assert invoice.payment_url == invoice.charge.payment_url
        assert set(invoice.qr_codes) == {"pix"}
        assert invoice.qr_codes["pix"] == invoice.charge.qr_code_pix
        assert invoice.instructions == invoice.charge.instructions
        assert invoice.auto_capture_enabled is True
        assert invoice.webhook_configured is True

    @pytest.mark.asyncio
    async def test_crypto_invoice_without_webhook(self, gateway):
        invoice = await gateway.create_invoice(charge_request(payment_method="bnb", amount=20000, webhook_url=None))

        assert set(invoice.qr_codes) == {"crypto"}
        assert invoice.instructions.crypto_details.confirmations_needed == 15
        assert invoice.webhook_configured is False

    @pytest.mark.asyncio
    async def test_invoice_idempotency(self, gateway):
        first = await gateway.create_invoice(charge_request(), idempotency_key="inv-1")
        second = await gateway.create_invoice(charge_request(), idempotency_key="inv-1")
        assert first.charge.id == second.charge.id


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_and_list(self, gateway):
        charge = await gateway.create_charge(charge_request())

        assert (await gateway.get_charge(charge.id)) == charge
        assert [c.id for c in await gateway.list_charges()] == [charge.id]
        assert await gateway.list_charges(ChargeFilters(statuses=(ChargeStatus.COMPLETED,))) == []

    @pytest.mark.asyncio
    async def test_poll_status_advances(self, gateway, clock):
        charge = await gateway.create_charge(charge_request())

        assert (await gateway.poll_status(charge.id)).status is ChargeStatus.PENDING
        clock.advance(10)
        assert (await gateway.poll_status(charge.id)).status is ChargeStatus.COMPLETED
        # polling a settled charge is a plain read
        assert (await gateway.poll_status(charge.id)).status is ChargeStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_unknown_ids(self, gateway):
        for call in (gateway.get_charge, gateway.poll_status, gateway.list_refunds, gateway.list_webhook_deliveries):
            with pytest.raises(ChargeNotFound):
                await call("ch_missing")

    def test_payment_methods(self, gateway):
        methods = {rate.method for rate in gateway.payment_methods()}
        assert methods == set(PaymentMethod)


class TestRefundsAndDeliveries:
    @pytest.mark.asyncio
    async def test_create_and_list_refunds(self, gateway, clock):
        charge = await gateway.create_charge(charge_request())
        clock.advance(10)
        await gateway.poll_status(charge.id)

        refund = await gateway.create_refund(charge.id, 2000, "fraudulent", {"case": "F-9"})
        assert refund.amount == 2000
        assert refund.metadata == {"case": "F-9"}
        assert [r.id for r in await gateway.list_refunds(charge.id)] == [refund.id]
        assert (await gateway.get_charge(charge.id)).status is ChargeStatus.PARTIALLY_REFUNDED

    @pytest.mark.asyncio
    async def test_delivery_log_per_charge(self, gateway, container):
        charge = await gateway.create_charge(charge_request())
        await gateway.cancel_charge(charge.id)
        await container.dispatcher.drain()

        deliveries = await gateway.list_webhook_deliveries(charge.id)
        assert [d.event_type for d in deliveries] == ["charge.pending", "charge.cancelled"]

    @pytest.mark.asyncio
    async def test_confirmations_and_settlement_passthrough(self, gateway):
        crypto = await gateway.create_charge(charge_request(payment_method="usdt", amount=5000))
        assert (await gateway.record_confirmations(crypto.id, 1)).status is ChargeStatus.COMPLETED

        boleto = await gateway.create_charge(charge_request(payment_method="boleto", amount=10000))
        settled = await gateway.confirm_settlement_by_reference(boleto.transaction_reference)
        assert settled.status is ChargeStatus.COMPLETED

        card = await gateway.create_charge(charge_request(payment_method="credit_card", amount=10000))
        assert (await gateway.fail_charge(card.id, "insufficient funds")).status is ChargeStatus.FAILED


class TestReports:
    async def _seed(self, gateway, clock):
        settled = await gateway.create_charge(charge_request())
        failed = await gateway.create_charge(charge_request(payment_method="credit_card", amount=10000))
        await gateway.create_charge(charge_request(payment_method="boleto", amount=10000))
        cancelled = await gateway.create_charge(charge_request(amount=5000))
        await gateway.create_charge(charge_request(payment_method="boleto", amount=10000, currency="usd"))

        await gateway.fail_charge(failed.id, "card declined")
        await gateway.cancel_charge(cancelled.id)
        clock.advance(10)
        await gateway.poll_status(settled.id)
        await gateway.create_refund(settled.id, 2000)

    @pytest.mark.asyncio
    async def test_statistics(self, gateway, clock):
        await self._seed(gateway, clock)

        stats = await gateway.statistics("today")
        assert stats.currency == "BRL"
        assert stats.total_charges == 4
        assert stats.total_amount == 15000
        assert stats.success_rate == Decimal("25.00")
        assert stats.average_transaction == 15000
        by_method = {m.method: m for m in stats.payment_methods}
        assert set(by_method) == {PaymentMethod.PIX, PaymentMethod.CREDIT_CARD, PaymentMethod.BOLETO}
        assert (by_method[PaymentMethod.PIX].count, by_method[PaymentMethod.PIX].amount) == (2, 15000)
        assert by_method[PaymentMethod.PIX].success_rate == Decimal("50.00")
        assert by_method[PaymentMethod.CREDIT_CARD].success_rate == Decimal("0.00")
        assert stats.refunds.total_refunds == 1
        assert stats.refunds.total_refunded == 2000
        assert stats.refunds.refund_rate == Decimal("100.00")

        assert (await gateway.statistics("today", "usd")).total_charges == 1

    @pytest.mark.asyncio
    async def test_statistics_period_window(self, gateway, clock):
        await self._seed(gateway, clock)
        clock.advance(86400)

        today = await gateway.statistics("today")
        assert today.total_charges == 0
        assert today.success_rate == Decimal("0.00")
        assert today.average_transaction == 0
        assert today.payment_methods == []
        assert (await gateway.statistics("week")).total_charges == 4

    @pytest.mark.asyncio
    async def test_balance(self, gateway, clock):
        assert (await gateway.balance()).available == []
        await self._seed(gateway, clock)

        balance = await gateway.balance()
        available = {entry.currency: entry.amount for entry in balance.available}
        pending = {entry.currency: entry.amount for entry in balance.pending}
        assert available == {"BRL": 14852 - 2000, "USD": 0}
        assert pending == {"BRL": 9750, "USD": 9750}
