"""Charge domain exports"""

from .exceptions import (
    ChargeError,
    ChargeNotFound,
    DeliveryFailed,
    InvalidAmount,
    InvalidState,
    NotFound,
    RefundExceedsAvailable,
    RefundNotFound,
    UnsupportedMethod,
)
from .models import (
    BankDetails,
    Charge,
    ChargeFilters,
    ChargeRequest,
    ChargeStatus,
    CryptoDetails,
    Invoice,
    MethodFamily,
    PaymentInstructions,
    PaymentMethod,
    Refund,
    RefundReason,
    RefundStatus,
)
from .repository import ChargeStore

__all__ = [
    "BankDetails",
    "Charge",
    "ChargeError",
    "ChargeFilters",
    "ChargeNotFound",
    "ChargeRequest",
    "ChargeStatus",
    "ChargeStore",
    "CryptoDetails",
    "DeliveryFailed",
    "InvalidAmount",
    "InvalidState",
    "Invoice",
    "MethodFamily",
    "NotFound",
    "PaymentInstructions",
    "PaymentMethod",
    "Refund",
    "RefundExceedsAvailable",
    "RefundNotFound",
    "RefundReason",
    "RefundStatus",
    "UnsupportedMethod",
]
