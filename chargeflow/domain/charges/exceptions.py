"""Charge domain specific exceptions."""

from __future__ import annotations


class ChargeError(Exception):
    """Base class for charge engine domain errors."""


class InvalidAmount(ChargeError):
    """Raised when an amount is not positive or cannot cover the processing fee."""


class UnsupportedMethod(ChargeError):
    """Raised when a payment method is unknown or disabled."""


class NotFound(ChargeError):
    """Raised when the requested record cannot be found."""


class ChargeNotFound(NotFound):
    """Raised when no charge exists for the given id or reference."""


class RefundNotFound(NotFound):
    """Raised when no refund exists for the given id."""


class InvalidState(ChargeError):
    """Raised when an operation is illegal for the charge's current status."""


class RefundExceedsAvailable(InvalidState):
    """Raised when a refund would exceed the charge's refundable balance."""


class DeliveryFailed(ChargeError):
    """Raised internally when a webhook delivery attempt fails."""

    def __init__(self, message: str, *, response_code: int | None = None) -> None:
        super().__init__(message)
        self.response_code = response_code
