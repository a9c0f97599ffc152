"""create charge, refund and webhook delivery tables

Revision ID: 3f9c2a7d1b40
Revises: 
Create Date: 2026-10-19 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c2a7d1b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "charges",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("payment_method", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("merchant_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("webhook_url", sa.Text()),
        sa.Column("meta", sa.Text()),
        sa.Column("processing_fee", sa.Integer(), nullable=False),
        sa.Column("net_amount", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.String(length=40), nullable=False, unique=True),
        sa.Column("payment_url", sa.Text(), nullable=False),
        sa.Column("receipt_url", sa.Text(), nullable=False),
        sa.Column("transaction_reference", sa.String(length=25), nullable=False, unique=True),
        sa.Column("crypto_address", sa.String(length=128)),
        sa.Column("crypto_amount", sa.String(length=40)),
        sa.Column("confirmation_count", sa.Integer()),
        sa.Column("required_confirmations", sa.Integer()),
        sa.Column("qr_code_pix", sa.Text()),
        sa.Column("qr_code_crypto", sa.Text()),
        sa.Column("instructions", sa.Text()),
        sa.Column("auto_capture", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("captured_at", sa.DateTime(timezone=True)),
        sa.Column("captured_amount", sa.Integer()),
        sa.Column("amount_refunded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("idempotency_key", sa.String(length=255), unique=True),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_charges_payment_method", "charges", ["payment_method"])
    op.create_index("ix_charges_status", "charges", ["status"])
    op.create_index("ix_charges_created_at", "charges", ["created_at"])

    op.create_table(
        "refunds",
        sa.Column("id", sa.String(length=40), primary_key=True),
        sa.Column("charge_id", sa.String(length=40), sa.ForeignKey("charges.id"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("meta", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_refunds_charge_id", "refunds", ["charge_id"])

    op.create_table(
        "webhook_deliveries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(length=40), nullable=False),
        sa.Column("charge_id", sa.String(length=40), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("event_type", sa.String(length=40), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("signature", sa.String(length=128), nullable=False),
        sa.Column("attempt", sa.Integer(), nullable=False),
        sa.Column("outcome", sa.String(length=20), nullable=False),
        sa.Column("response_code", sa.Integer()),
        sa.Column("error", sa.Text()),
        sa.Column("final", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_webhook_deliveries_event_id", "webhook_deliveries", ["event_id"])
    op.create_index("ix_webhook_deliveries_charge_id", "webhook_deliveries", ["charge_id"])


def downgrade() -> None:
    op.drop_index("ix_webhook_deliveries_charge_id", table_name="webhook_deliveries")
    op.drop_index("ix_webhook_deliveries_event_id", table_name="webhook_deliveries")
    op.drop_table("webhook_deliveries")
    op.drop_index("ix_refunds_charge_id", table_name="refunds")
    op.drop_table("refunds")
    op.drop_index("ix_charges_created_at", table_name="charges")
    op.drop_index("ix_charges_status", table_name="charges")
    op.drop_index("ix_charges_payment_method", table_name="charges")
    op.drop_table("charges")
