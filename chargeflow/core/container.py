"""Simple dependency container for wiring core services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from chargeflow.core.clock import Clock, SystemClock
from chargeflow.core.config import Settings, get_settings
from chargeflow.core.crypto import WebhookSigner
from chargeflow.domain.charges.models import BankDetails
from chargeflow.domain.charges.state_machine import ChargeStateMachine, LifecycleTimings
from chargeflow.domain.instructions import InstructionGenerator, MerchantProfile
from chargeflow.domain.rates import FeeEngine, RateTable
from chargeflow.domain.webhooks import WebhookDispatcher
from chargeflow.domain.webhooks.dispatcher import Sleep
from chargeflow.infrastructure.database import build_engine, build_session_factory, init_db
from chargeflow.infrastructure.database.repositories import SqlChargeStore
from chargeflow.schemas import charge_payload
from chargeflow.services import PaymentGateway
from chargeflow.workers import ChargeLifecycleWorker

logger = logging.getLogger(__name__)


def merchant_profile(settings: Settings) -> MerchantProfile:
    merchant = settings.merchant
    return MerchantProfile(
        merchant_id=merchant.merchant_id,
        name=merchant.name,
        city=merchant.city,
        public_base_url=merchant.public_base_url,
        pix_key=merchant.pix_key,
        pix_key_type=merchant.pix_key_type,
        bank_details=BankDetails(
            bank_name=merchant.bank_name,
            bank_code=merchant.bank_code,
            agency=merchant.agency,
            account_number=merchant.account_number,
            account_type=merchant.account_type,
        ),
    )


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    rates: RateTable
    fees: FeeEngine
    instructions: InstructionGenerator
    store: SqlChargeStore
    dispatcher: WebhookDispatcher
    machine: ChargeStateMachine
    gateway: PaymentGateway
    worker: ChargeLifecycleWorker

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ) -> "ApplicationContainer":
        clock = clock or SystemClock()
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)
        rates = RateTable.default(settings.rate_overrides)
        fees = FeeEngine(rates)
        instructions = InstructionGenerator(rates, merchant_profile(settings))
        store = SqlChargeStore(session_factory)
        dispatcher = WebhookDispatcher(
            WebhookSigner(settings.webhook_secret),
            store,
            settings.webhooks,
            charge_payload,
            clock,
            livemode=settings.livemode,
            transport=transport,
            sleep=sleep,
        )
        lifecycle = settings.lifecycle
        machine = ChargeStateMachine(
            store,
            fees,
            instructions,
            dispatcher,
            clock,
            LifecycleTimings(
                pix_settlement=timedelta(seconds=lifecycle.pix_settlement_seconds),
                card_processing=timedelta(seconds=lifecycle.card_processing_seconds),
                card_settlement=timedelta(seconds=lifecycle.card_settlement_seconds),
            ),
        )
        gateway = PaymentGateway(
            machine=machine,
            store=store,
            deliveries=store,
            instructions=instructions,
            rates=rates,
        )
        worker = ChargeLifecycleWorker(machine, store, lifecycle.poll_interval_seconds)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            rates=rates,
            fees=fees,
            instructions=instructions,
            store=store,
            dispatcher=dispatcher,
            machine=machine,
            gateway=gateway,
            worker=worker,
        )

    async def startup(self) -> None:
        """Ensure the schema exists and start background workers."""
        await init_db(self.engine)
        if self.settings.lifecycle.worker_enabled:
            self.worker.start()

    async def shutdown(self) -> None:
        await self.worker.stop()
        await self.dispatcher.drain()
        await self.dispatcher.aclose()
        await self.engine.dispose()
        logger.info("Application container shut down")


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer.build(get_settings())


__all__ = ["ApplicationContainer", "get_container", "merchant_profile"]
