"""Webhook event envelope and delivery log records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(slots=True)
class WebhookEvent:
    id: str
    type: str
    charge_id: str
    created: int
    livemode: bool
    data: dict[str, Any] = field(default_factory=dict)

    def to_envelope(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "data": {"object": self.data},
            "created": self.created,
            "livemode": self.livemode,
        }


@dataclass(slots=True)
class WebhookDeliveryRecord:
    """One delivery attempt; records are only ever appended."""

    event_id: str
    charge_id: str
    url: str
    event_type: str
    payload: str
    signature: str
    attempt: int
    outcome: DeliveryOutcome
    created_at: datetime
    response_code: Optional[int] = None
    error: Optional[str] = None
    final: bool = False
    id: Optional[int] = None
