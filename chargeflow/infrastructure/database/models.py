"""SQLAlchemy ORM models."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from chargeflow.infrastructure.database.base import Base


class ChargeRecord(Base):
    __tablename__ = "charges"

    id = Column(String(40), primary_key=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(10), nullable=False, default="BRL")
    payment_method = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    merchant_id = Column(String(64), nullable=False)
    description = Column(Text)
    webhook_url = Column(Text)
    meta = Column(Text)
    processing_fee = Column(Integer, nullable=False)
    net_amount = Column(Integer, nullable=False)
    invoice_id = Column(String(40), nullable=False, unique=True)
    payment_url = Column(Text, nullable=False)
    receipt_url = Column(Text, nullable=False)
    transaction_reference = Column(String(25), nullable=False, unique=True)
    crypto_address = Column(String(128))
    crypto_amount = Column(String(40))
    confirmation_count = Column(Integer)
    required_confirmations = Column(Integer)
    qr_code_pix = Column(Text)
    qr_code_crypto = Column(Text)
    instructions = Column(Text)
    auto_capture = Column(Boolean, nullable=False, default=True)
    captured_at = Column(DateTime(timezone=True))
    captured_amount = Column(Integer)
    amount_refunded = Column(Integer, nullable=False, default=0)
    idempotency_key = Column(String(255), unique=True)
    failure_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    refunds = relationship("RefundRecord", back_populates="charge", cascade="all, delete-orphan")


class RefundRecord(Base):
    __tablename__ = "refunds"

    id = Column(String(40), primary_key=True)
    charge_id = Column(String(40), ForeignKey("charges.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    reason = Column(String(40), nullable=False)
    status = Column(String(20), nullable=False)
    meta = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)

    charge = relationship("ChargeRecord", back_populates="refunds")


class WebhookDeliveryLog(Base):
    __tablename__ = "webhook_deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(40), nullable=False, index=True)
    charge_id = Column(String(40), nullable=False, index=True)
    url = Column(Text, nullable=False)
    event_type = Column(String(40), nullable=False)
    payload = Column(Text, nullable=False)
    signature = Column(String(128), nullable=False)
    attempt = Column(Integer, nullable=False)
    outcome = Column(String(20), nullable=False)
    response_code = Column(Integer)
    error = Column(Text)
    final = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
