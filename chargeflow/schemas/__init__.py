"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, JsonValue

from chargeflow.domain.charges.models import (
    Charge,
    ChargeRequest,
    ChargeStatus,
    PaymentMethod,
    RefundReason,
    RefundStatus,
)
from chargeflow.domain.charges.reports import StatisticsPeriod
from chargeflow.domain.webhooks.models import DeliveryOutcome


class ChargeCreateRequest(BaseModel):
    amount: int = Field(..., description="Amount in minor units (centavos)")
    payment_method: str = Field(..., min_length=1, max_length=32)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: str = Field(..., pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$", max_length=255)
    currency: str = Field(default="BRL", min_length=3, max_length=3)
    description: Optional[str] = Field(default=None, max_length=500)
    webhook_url: Optional[AnyHttpUrl] = None
    metadata: dict[str, JsonValue] = Field(default_factory=dict)

    def to_domain(self) -> ChargeRequest:
        return ChargeRequest(
            amount=self.amount,
            payment_method=self.payment_method,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            currency=self.currency,
            description=self.description,
            webhook_url=str(self.webhook_url) if self.webhook_url else None,
            metadata=dict(self.metadata),
        )


class BankDetailsResponse(BaseModel):
    bank_name: str
    bank_code: str
    agency: str
    account_number: str
    account_type: str

    model_config = ConfigDict(from_attributes=True)


class CryptoDetailsResponse(BaseModel):
    address: str
    amount: Decimal
    currency: str
    network: str
    confirmations_needed: int

    model_config = ConfigDict(from_attributes=True)


class InstructionsResponse(BaseModel):
    title: str
    steps: list[str]
    qr_code: Optional[str] = None
    payment_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    additional_info: Optional[str] = None
    bank_details: Optional[BankDetailsResponse] = None
    crypto_details: Optional[CryptoDetailsResponse] = None

    model_config = ConfigDict(from_attributes=True)


class ChargeResponse(BaseModel):
    id: str
    amount: int
    currency: str
    payment_method: PaymentMethod
    status: ChargeStatus
    customer_name: str
    customer_email: str
    merchant_id: str
    description: Optional[str] = None
    webhook_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    processing_fee: int
    net_amount: int
    invoice_id: str
    payment_url: str
    receipt_url: str
    transaction_reference: str
    crypto_address: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    confirmation_count: Optional[int] = None
    required_confirmations: Optional[int] = None
    qr_code_pix: Optional[str] = None
    qr_code_crypto: Optional[str] = None
    instructions: Optional[InstructionsResponse] = None
    auto_capture: bool
    captured_at: Optional[datetime] = None
    captured_amount: Optional[int] = None
    amount_refunded: int
    failure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChargeListResponse(BaseModel):
    total: int
    limit: int
    offset: int
    charges: list[ChargeResponse]


class InvoiceResponse(BaseModel):
    charge: ChargeResponse
    payment_url: str
    qr_codes: dict[str, str] = Field(default_factory=dict)
    instructions: InstructionsResponse
    auto_capture_enabled: bool
    webhook_configured: bool

    model_config = ConfigDict(from_attributes=True)


class RefundCreateRequest(BaseModel):
    amount: Optional[int] = Field(default=None, description="Omit to refund the remaining balance")
    reason: RefundReason = RefundReason.REQUESTED_BY_CUSTOMER
    metadata: dict[str, JsonValue] = Field(default_factory=dict)


class RefundResponse(BaseModel):
    id: str
    charge_id: str
    amount: int
    reason: RefundReason
    status: RefundStatus
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RefundListResponse(BaseModel):
    total: int
    refunds: list[RefundResponse]


class ConfirmationUpdate(BaseModel):
    confirmations: Optional[int] = Field(default=None, ge=0, description="Omit to count one more confirmation")
    allow_overflow: bool = False


class ChargeFailRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class PixSettlementNotification(BaseModel):
    txid: str = Field(..., min_length=1, max_length=35)
    end_to_end_id: Optional[str] = None


class WebhookDeliveryResponse(BaseModel):
    id: int
    event_id: str
    charge_id: str
    url: str
    event_type: str
    payload: str
    signature: str
    attempt: int
    outcome: DeliveryOutcome
    response_code: Optional[int] = None
    error: Optional[str] = None
    final: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WebhookDeliveryListResponse(BaseModel):
    total: int
    deliveries: list[WebhookDeliveryResponse]


class PaymentMethodResponse(BaseModel):
    method: PaymentMethod
    name: str
    percentage_rate: Decimal
    fixed_rate: int
    processing_time: str
    min_amount: int
    max_amount: int
    network: Optional[str] = None
    confirmations: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentMethodListResponse(BaseModel):
    methods: list[PaymentMethodResponse]


class MethodStatisticsResponse(BaseModel):
    method: PaymentMethod
    count: int
    amount: int
    success_rate: Decimal

    model_config = ConfigDict(from_attributes=True)


class RefundStatisticsResponse(BaseModel):
    total_refunds: int
    total_refunded: int
    refund_rate: Decimal

    model_config = ConfigDict(from_attributes=True)


class StatisticsResponse(BaseModel):
    period: StatisticsPeriod
    since: datetime
    currency: str
    total_charges: int
    total_amount: int = Field(..., description="Sum of settled charges in minor units")
    success_rate: Decimal
    average_transaction: int
    payment_methods: list[MethodStatisticsResponse]
    refunds: RefundStatisticsResponse

    model_config = ConfigDict(from_attributes=True)


class BalanceAmountResponse(BaseModel):
    currency: str
    amount: int

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    available: list[BalanceAmountResponse]
    pending: list[BalanceAmountResponse]

    model_config = ConfigDict(from_attributes=True)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    livemode: bool


def charge_payload(charge: Charge) -> dict[str, Any]:
    """JSON-ready charge body used as the ``data.object`` of webhook events."""
    return ChargeResponse.model_validate(charge).model_dump(mode="json")
