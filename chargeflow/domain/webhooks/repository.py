"""Repository protocol for the webhook delivery log."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import WebhookDeliveryRecord


class DeliveryLog(Protocol):
    async def append_delivery(self, record: WebhookDeliveryRecord) -> WebhookDeliveryRecord:
        ...

    async def list_deliveries(
        self,
        charge_id: str | None = None,
        event_id: str | None = None,
    ) -> Sequence[WebhookDeliveryRecord]:
        ...
