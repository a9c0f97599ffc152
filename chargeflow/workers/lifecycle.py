"""Periodic advancement of in-flight charges."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from chargeflow.domain.charges.models import ChargeFilters, ChargeStatus
from chargeflow.domain.charges.reports import IN_FLIGHT_STATUSES
from chargeflow.domain.charges.repository import ChargeStore
from chargeflow.domain.charges.state_machine import ChargeStateMachine

logger = logging.getLogger(__name__)


class ChargeLifecycleWorker:
    def __init__(
        self,
        machine: ChargeStateMachine,
        store: ChargeStore,
        interval_seconds: float = 5.0,
        page_size: int = 100,
    ) -> None:
        self.machine = machine
        self.store = store
        self.interval_seconds = interval_seconds
        self.page_size = page_size
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _in_flight(self) -> dict[str, ChargeStatus]:
        statuses: dict[str, ChargeStatus] = {}
        offset = 0
        while True:
            page = await self.store.list(
                ChargeFilters(statuses=IN_FLIGHT_STATUSES, limit=self.page_size, offset=offset)
            )
            statuses.update((charge.id, charge.status) for charge in page)
            if len(page) < self.page_size:
                return statuses
            offset += self.page_size

    async def run_once(self) -> int:
        """Advance every pending or processing charge; return how many changed status."""
        before = await self._in_flight()
        if not before:
            return 0
        results = await asyncio.gather(
            *(self.machine.advance(charge_id) for charge_id in before), return_exceptions=True
        )
        changed = 0
        for charge_id, result in zip(before, results):
            if isinstance(result, BaseException):
                logger.error("Failed to advance charge %s: %s", charge_id, result, exc_info=result)
                continue
            if result.status is not before[charge_id]:
                changed += 1
        return changed

    async def _loop(self) -> None:
        logger.info("Charge lifecycle worker started (every %ss)", self.interval_seconds)
        while not self._stopping.is_set():
            try:
                await self.run_once()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Charge lifecycle sweep failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.info("Charge lifecycle worker stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
