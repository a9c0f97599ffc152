"""Webhook domain exports"""

from .dispatcher import WebhookDispatcher
from .models import DeliveryOutcome, WebhookDeliveryRecord, WebhookEvent
from .repository import DeliveryLog

__all__ = [
    "DeliveryLog",
    "DeliveryOutcome",
    "WebhookDeliveryRecord",
    "WebhookDispatcher",
    "WebhookEvent",
]
