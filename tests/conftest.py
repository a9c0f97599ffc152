"""Shared fixtures: fake clock, recorded backoff, mock webhook endpoints, wired container."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
import pytest_asyncio

from chargeflow.core.config import (
    DatabaseSettings,
    LifecycleSettings,
    SecuritySettings,
    Settings,
)
from chargeflow.core.container import ApplicationContainer
from chargeflow.domain.charges.models import ChargeRequest

WEBHOOK_SECRET = "whsec_test_secret"
SETTLEMENT_SECRET = "pspsec_test_secret"
HOOK_URL = "https://merchant.example/hooks/charges"
DOWN_URL = "https://down.example/hooks"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingSleep:
    """Stands in for ``asyncio.sleep`` between webhook retries.

    Each backoff moves the fake clock forward by the slept time.
    """

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class WebhookReceiver:
    """``httpx.MockTransport`` handler playing the merchant's webhook endpoint."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.unreachable: set[str] = {"down.example"}
        self.scripted: list[int] = []
        self.default_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        status = self.scripted.pop(0) if self.scripted else self.default_status
        return httpx.Response(status, json={"received": True})

    def events(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def event_types(self) -> list[str]:
        return [event["type"] for event in self.events()]


def charge_request(**overrides: Any) -> ChargeRequest:
    data: dict[str, Any] = {
        "amount": 15000,
        "payment_method": "pix",
        "customer_name": "Ana Souza",
        "customer_email": "ana@example.com",
        "description": "Order 1001",
        "webhook_url": HOOK_URL,
        "metadata": {"order_id": "1001"},
    }
    data.update(overrides)
    return ChargeRequest(**data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def receiver() -> WebhookReceiver:
    return WebhookReceiver()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'chargeflow.db'}"),
        lifecycle=LifecycleSettings(worker_enabled=False),
        security=SecuritySettings(
            api_key="sk_test_chargeflow",
            webhook_secret=WEBHOOK_SECRET,
            settlement_secret=SETTLEMENT_SECRET,
        ),
    )


@pytest_asyncio.fixture
async def container(settings, clock, sleeper, receiver):
    container = ApplicationContainer.build(
        settings,
        clock=clock,
        transport=httpx.MockTransport(receiver.handler),
        sleep=sleeper,
    )
    await container.startup()
    yield container
    await container.shutdown()


@pytest.fixture
def gateway(container):
    return container.gateway


@pytest.fixture
def machine(container):
    return container.machine


@pytest.fixture
def store(container):
    return container.store
