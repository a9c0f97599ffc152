"""Rail-specific payment instructions and QR payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from urllib.parse import quote

from chargeflow.domain.charges.models import (
    BankDetails,
    Charge,
    CryptoDetails,
    MethodFamily,
    PaymentInstructions,
)
from chargeflow.domain.rates import RateTable

from .pix import build_pix_payload, normalize_pix_key, validate_pix_key

PIX_EXPIRY = timedelta(minutes=5)
CARD_EXPIRY = timedelta(minutes=30)
BANK_SLIP_EXPIRY = timedelta(days=3)


@dataclass(frozen=True, slots=True)
class MerchantProfile:
    merchant_id: str
    name: str
    city: str
    public_base_url: str
    pix_key: str
    pix_key_type: str
    bank_details: BankDetails


def format_amount(amount: int, currency: str) -> str:
    return f"{currency} {Decimal(amount) / Decimal(100):.2f}"


def format_crypto(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


def build_crypto_uri(symbol: str, address: str, amount: Decimal, label: str, payment_url: str) -> str:
    return f"{symbol.upper()}:{address}?amount={format_crypto(amount)}&label={quote(label)}|URL:{payment_url}"


class InstructionGenerator:
    """Derives :class:`PaymentInstructions` from a charge; never persists anything."""

    def __init__(self, table: RateTable, merchant: MerchantProfile) -> None:
        if not validate_pix_key(merchant.pix_key, merchant.pix_key_type):
            raise ValueError(f"invalid {merchant.pix_key_type} PIX key configured for merchant")
        self.table = table
        self.merchant = merchant
        self._pix_key = normalize_pix_key(merchant.pix_key, merchant.pix_key_type)

    def invoice_url(self, invoice_id: str) -> str:
        return f"{self.merchant.public_base_url.rstrip('/')}/pay/{invoice_id}"

    def receipt_url(self, charge_id: str) -> str:
        return f"{self.merchant.public_base_url.rstrip('/')}/receipts/{charge_id}"

    def pix_qr_payload(self, charge: Charge) -> str:
        return build_pix_payload(
            key=self._pix_key,
            amount=charge.amount,
            merchant_name=self.merchant.name,
            merchant_city=self.merchant.city,
            txid=charge.transaction_reference,
            description=charge.description,
        )

    def crypto_qr_payload(self, charge: Charge) -> str:
        return build_crypto_uri(
            charge.payment_method.value,
            charge.crypto_address or "",
            charge.crypto_amount or Decimal(0),
            self.merchant.name,
            charge.payment_url,
        )

    def qr_codes(self, charge: Charge) -> dict[str, str]:
        family = charge.payment_method.family
        if family is MethodFamily.INSTANT:
            return {"pix": self.pix_qr_payload(charge)}
        if family is MethodFamily.CRYPTO:
            return {"crypto": self.crypto_qr_payload(charge)}
        return {}

    def build_instructions(self, charge: Charge) -> PaymentInstructions:
        family = charge.payment_method.family
        if family is MethodFamily.INSTANT:
            return self._instant(charge)
        if family is MethodFamily.CARD:
            return self._card(charge)
        if family is MethodFamily.BANK_SLIP:
            return self._bank_slip(charge)
        return self._crypto(charge)

    def _instant(self, charge: Charge) -> PaymentInstructions:
        return PaymentInstructions(
            title="Pay with PIX",
            steps=[
                "1. Open your banking app",
                "2. Scan the QR code or paste the PIX code",
                f"3. Confirm the amount of {format_amount(charge.amount, charge.currency)} and the recipient",
                "4. Authorize with your password or biometrics",
                "5. The payment settles instantly",
            ],
            qr_code=self.pix_qr_payload(charge),
            payment_url=charge.payment_url,
            expires_at=charge.created_at + PIX_EXPIRY,
            additional_info="PIX settles instantly. A confirmation is sent by email.",
        )

    def _card(self, charge: Charge) -> PaymentInstructions:
        return PaymentInstructions(
            title="Pay by card",
            steps=[
                "1. Open the payment link",
                "2. Enter your card details",
                f"3. Confirm the amount of {format_amount(charge.amount, charge.currency)}",
                "4. Authorize with your password or biometrics",
                f"5. Wait for processing ({self.table.get(charge.payment_method).processing_time})",
            ],
            payment_url=f"{self.merchant.public_base_url.rstrip('/')}/pay/card/{charge.invoice_id}",
            expires_at=charge.created_at + CARD_EXPIRY,
            additional_info="Visa, Mastercard and Elo accepted.",
        )

    def _bank_slip(self, charge: Charge) -> PaymentInstructions:
        return PaymentInstructions(
            title="Pay with bank slip",
            steps=[
                "1. Open the bank slip link",
                "2. Print it or copy the barcode",
                "3. Pay at any bank, lottery outlet or banking app",
                "4. Wait for clearing (3 business days)",
                "5. A confirmation is sent by email",
            ],
            payment_url=f"{self.merchant.public_base_url.rstrip('/')}/pay/boleto/{charge.invoice_id}",
            expires_at=charge.created_at + BANK_SLIP_EXPIRY,
            additional_info=f"Bank slip for {format_amount(charge.amount, charge.currency)}, valid for 3 business days.",
            bank_details=self.merchant.bank_details,
        )

    def _crypto(self, charge: Charge) -> PaymentInstructions:
        rate = self.table.get(charge.payment_method)
        symbol = charge.payment_method.value.upper()
        amount = charge.crypto_amount or Decimal(0)
        confirmations = charge.required_confirmations or rate.confirmations or 1
        return PaymentInstructions(
            title=f"Pay with {symbol}",
            steps=[
                f"1. Send exactly {format_crypto(amount)} {symbol}",
                f"2. To the address: {charge.crypto_address}",
                f"3. Wait for {confirmations} network confirmation(s)",
                "4. The payment is processed automatically",
                "5. A confirmation is sent by email",
            ],
            qr_code=self.crypto_qr_payload(charge),
            payment_url=charge.payment_url,
            additional_info=f"Network: {rate.network}. Network fees are paid by the sender.",
            crypto_details=CryptoDetails(
                address=charge.crypto_address or "",
                amount=amount,
                currency=symbol,
                network=rate.network or "unknown",
                confirmations_needed=confirmations,
            ),
        )


__all__ = ["InstructionGenerator", "MerchantProfile", "build_crypto_uri", "format_amount", "format_crypto"]
