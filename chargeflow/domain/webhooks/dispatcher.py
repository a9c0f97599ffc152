"""Signed, retried, per-charge ordered webhook delivery."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from chargeflow.core.clock import Clock
from chargeflow.core.config import WebhookSettings
from chargeflow.core.crypto import WebhookSigner
from chargeflow.domain.charges.exceptions import DeliveryFailed
from chargeflow.domain.charges.models import Charge

from .models import DeliveryOutcome, WebhookDeliveryRecord, WebhookEvent
from .repository import DeliveryLog

logger = logging.getLogger(__name__)

ChargeSerializer = Callable[[Charge], dict[str, Any]]
Sleep = Callable[[float], Awaitable[None]]

EVENT_HEADER = "X-Chargeflow-Event"
DELIVERY_HEADER = "X-Chargeflow-Delivery"


class WebhookDispatcher:
    """Deliver ``charge.*`` events to the charge's webhook URL.

    ``dispatch`` never blocks and never raises: the event body is built from
    the charge as it is at call time, and delivery runs as a background task.
    Deliveries for the same charge are chained so the first POST of an event
    is never sent before the first POST of the event dispatched before it.
    Every attempt is appended to the delivery log.
    """

    def __init__(
        self,
        signer: WebhookSigner,
        log: DeliveryLog,
        settings: WebhookSettings,
        serializer: ChargeSerializer,
        clock: Clock,
        *,
        livemode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self.signer = signer
        self.log = log
        self.settings = settings
        self.serializer = serializer
        self.clock = clock
        self.livemode = livemode
        self._transport = transport
        self._sleep = sleep or asyncio.sleep
        self._client: httpx.AsyncClient | None = None
        self._chains: dict[str, asyncio.Event] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def build_event(self, charge: Charge, event_type: str) -> WebhookEvent:
        return WebhookEvent(
            id=f"evt_{uuid.uuid4().hex}",
            type=event_type,
            charge_id=charge.id,
            created=int(self.clock.now().timestamp()),
            livemode=self.livemode,
            data=self.serializer(charge),
        )

    def dispatch(self, charge: Charge, event_type: str) -> Optional[asyncio.Task[None]]:
        if not charge.webhook_url:
            logger.debug("Charge %s has no webhook URL, skipping %s", charge.id, event_type)
            return None

        event = self.build_event(charge, event_type)
        body = json.dumps(event.to_envelope(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        previous = self._chains.get(charge.id)
        initiated = asyncio.Event()
        self._chains[charge.id] = initiated

        task = asyncio.create_task(self._run(event, charge.webhook_url, body, previous, initiated))
        self._tasks.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._tasks.discard(finished)
            if self._chains.get(charge.id) is initiated:
                del self._chains[charge.id]

        task.add_done_callback(_done)
        return task

    async def _run(
        self,
        event: WebhookEvent,
        url: str,
        body: bytes,
        previous: Optional[asyncio.Event],
        initiated: asyncio.Event,
    ) -> None:
        try:
            if previous is not None:
                await previous.wait()
            await self._deliver(event, url, body, initiated)
        except asyncio.CancelledError:
            logger.debug("Delivery of %s cancelled", event.id)
            raise
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error delivering %s to %s", event.id, url)
        finally:
            initiated.set()

    async def _deliver(self, event: WebhookEvent, url: str, body: bytes, initiated: asyncio.Event) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.initial_backoff_seconds,
                exp_base=self.settings.backoff_multiplier,
            ),
            retry=retry_if_exception_type(DeliveryFailed),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    initiated.set()
                    await self._attempt(event, url, body, attempt.retry_state.attempt_number)
        except DeliveryFailed as exc:
            logger.error(
                "Webhook %s (%s) to %s permanently failed after %s attempts: %s",
                event.id,
                event.type,
                url,
                self.settings.max_attempts,
                exc,
            )

    async def _attempt(self, event: WebhookEvent, url: str, body: bytes, attempt: int) -> None:
        signature = self.signer.sign(body, timestamp=int(self.clock.now().timestamp()))
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.settings.user_agent,
            self.settings.signature_header: signature,
            EVENT_HEADER: event.type,
            DELIVERY_HEADER: event.id,
        }
        final = attempt >= self.settings.max_attempts
        try:
            response = await self._get_client().post(url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            error = f"{type(exc).__name__}: {exc}"
            await self._record(event, url, body, signature, attempt, DeliveryOutcome.FAILED, final, error=error)
            logger.warning("Webhook %s attempt %s to %s failed: %s", event.id, attempt, url, error)
            raise DeliveryFailed(error) from exc

        if response.is_success:
            await self._record(
                event, url, body, signature, attempt, DeliveryOutcome.DELIVERED, True, response_code=response.status_code
            )
            logger.info("Delivered %s (%s) to %s on attempt %s", event.id, event.type, url, attempt)
            return

        error = f"endpoint responded with HTTP {response.status_code}"
        await self._record(
            event,
            url,
            body,
            signature,
            attempt,
            DeliveryOutcome.FAILED,
            final,
            response_code=response.status_code,
            error=error,
        )
        logger.warning("Webhook %s attempt %s to %s failed: %s", event.id, attempt, url, error)
        raise DeliveryFailed(error, response_code=response.status_code)

    async def _record(
        self,
        event: WebhookEvent,
        url: str,
        body: bytes,
        signature: str,
        attempt: int,
        outcome: DeliveryOutcome,
        final: bool,
        *,
        response_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        await self.log.append_delivery(
            WebhookDeliveryRecord(
                event_id=event.id,
                charge_id=event.charge_id,
                url=url,
                event_type=event.type,
                payload=body.decode("utf-8"),
                signature=signature,
                attempt=attempt,
                outcome=outcome,
                created_at=self.clock.now(),
                response_code=response_code,
                error=error,
                final=final,
            )
        )

    async def drain(self) -> None:
        """Wait until every scheduled delivery, including retries, has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["ChargeSerializer", "WebhookDispatcher"]
