"""Domain models for charges, refunds and payment instructions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .exceptions import UnsupportedMethod


class MethodFamily(str, Enum):
    INSTANT = "instant"
    CARD = "card"
    BANK_SLIP = "bank_slip"
    CRYPTO = "crypto"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BOLETO = "boleto"
    USDT = "usdt"
    BITCOIN = "bitcoin"
    ETHEREUM = "ethereum"
    BNB = "bnb"

    @classmethod
    def parse(cls, value: "PaymentMethod | str") -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise UnsupportedMethod(f"unsupported payment method: {value!r}") from exc

    @property
    def family(self) -> MethodFamily:
        if self is PaymentMethod.PIX:
            return MethodFamily.INSTANT
        if self in (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD):
            return MethodFamily.CARD
        if self is PaymentMethod.BOLETO:
            return MethodFamily.BANK_SLIP
        return MethodFamily.CRYPTO

    @property
    def is_crypto(self) -> bool:
        return self.family is MethodFamily.CRYPTO


class ChargeStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class RefundStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RefundReason(str, Enum):
    REQUESTED_BY_CUSTOMER = "requested_by_customer"
    DUPLICATE = "duplicate"
    FRAUDULENT = "fraudulent"
    OTHER = "other"


@dataclass(slots=True)
class BankDetails:
    bank_name: str
    bank_code: str
    agency: str
    account_number: str
    account_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "bank_name": self.bank_name,
            "bank_code": self.bank_code,
            "agency": self.agency,
            "account_number": self.account_number,
            "account_type": self.account_type,
        }


@dataclass(slots=True)
class CryptoDetails:
    address: str
    amount: Decimal
    currency: str
    network: str
    confirmations_needed: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "amount": str(self.amount),
            "currency": self.currency,
            "network": self.network,
            "confirmations_needed": self.confirmations_needed,
        }


@dataclass(slots=True)
class PaymentInstructions:
    """Payer-facing view derived from a charge; rebuilt rather than edited."""

    title: str
    steps: list[str]
    qr_code: Optional[str] = None
    payment_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    additional_info: Optional[str] = None
    bank_details: Optional[BankDetails] = None
    crypto_details: Optional[CryptoDetails] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "steps": list(self.steps),
            "qr_code": self.qr_code,
            "payment_url": self.payment_url,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "additional_info": self.additional_info,
            "bank_details": self.bank_details.to_dict() if self.bank_details else None,
            "crypto_details": self.crypto_details.to_dict() if self.crypto_details else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentInstructions":
        bank = data.get("bank_details")
        crypto = data.get("crypto_details")
        expires_at = data.get("expires_at")
        return cls(
            title=data["title"],
            steps=list(data.get("steps") or []),
            qr_code=data.get("qr_code"),
            payment_url=data.get("payment_url"),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            additional_info=data.get("additional_info"),
            bank_details=BankDetails(**bank) if bank else None,
            crypto_details=CryptoDetails(
                address=crypto["address"],
                amount=Decimal(crypto["amount"]),
                currency=crypto["currency"],
                network=crypto["network"],
                confirmations_needed=crypto["confirmations_needed"],
            )
            if crypto
            else None,
        )


@dataclass(slots=True)
class ChargeRequest:
    amount: int
    payment_method: str
    customer_name: str
    customer_email: str
    currency: str = "BRL"
    description: Optional[str] = None
    webhook_url: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Charge:
    id: str
    amount: int
    currency: str
    payment_method: PaymentMethod
    status: ChargeStatus
    customer_name: str
    customer_email: str
    merchant_id: str
    processing_fee: int
    net_amount: int
    invoice_id: str
    payment_url: str
    receipt_url: str
    transaction_reference: str
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    webhook_url: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    crypto_address: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    confirmation_count: Optional[int] = None
    required_confirmations: Optional[int] = None
    qr_code_pix: Optional[str] = None
    qr_code_crypto: Optional[str] = None
    instructions: Optional[PaymentInstructions] = None
    auto_capture: bool = True
    captured_at: Optional[datetime] = None
    captured_amount: Optional[int] = None
    amount_refunded: int = 0
    idempotency_key: Optional[str] = None
    failure_reason: Optional[str] = None

    @property
    def is_crypto(self) -> bool:
        return self.payment_method.is_crypto

    @property
    def refundable_amount(self) -> int:
        return self.net_amount - self.amount_refunded


@dataclass(slots=True)
class Refund:
    id: str
    charge_id: str
    amount: int
    reason: RefundReason
    status: RefundStatus
    created_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ChargeFilters:
    customer: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    statuses: tuple[ChargeStatus, ...] = ()
    created_gte: Optional[datetime] = None
    created_lte: Optional[datetime] = None
    limit: int = 50
    offset: int = 0


@dataclass(slots=True)
class Invoice:
    charge: Charge
    payment_url: str
    qr_codes: dict[str, str]
    instructions: PaymentInstructions
    auto_capture_enabled: bool
    webhook_configured: bool
