"""PIX "copia e cola" (EMV BR Code) payload encoding and key validation.

The payload is a sequence of ``<id><length><value>`` fields terminated by a
CRC16-CCITT checksum in field ``63``. Merchant name, city and reference are
upper-cased ASCII with diacritics stripped, truncated to the BR Code limits.
"""

from __future__ import annotations

import re
import unicodedata
from decimal import Decimal

PIX_GUI = "br.gov.bcb.pix"
BRL_NUMERIC_CODE = "986"
MAX_NAME_LENGTH = 25
MAX_CITY_LENGTH = 15
MAX_TXID_LENGTH = 25
MAX_DESCRIPTION_LENGTH = 25
MAX_KEY_LENGTH = 77
MAX_FIELD_LENGTH = 99

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_RANDOM_KEY_RE = re.compile(r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$")
_TXID_RE = re.compile(r"[^A-Z0-9]")


def _field(field_id: str, value: str) -> str:
    if len(value) > MAX_FIELD_LENGTH:
        raise ValueError(f"BR Code field {field_id} exceeds 99 characters")
    return f"{field_id}{len(value):02d}{value}"


def normalize_text(value: str, limit: int) -> str:
    stripped = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in stripped if not unicodedata.combining(ch))
    return stripped.encode("ascii", "ignore").decode("ascii").upper()[:limit]


def crc16_ccitt(payload: str) -> str:
    crc = 0xFFFF
    for byte in payload.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = (crc << 1) ^ 0x1021
            else:
                crc <<= 1
            crc &= 0xFFFF
    return f"{crc:04X}"


def normalize_pix_key(key: str, key_type: str) -> str:
    if key_type == "phone":
        digits = re.sub(r"\D", "", key)
        return f"+{digits}" if digits.startswith("55") else f"+55{digits}"
    if key_type in {"cpf", "cnpj"}:
        return re.sub(r"\D", "", key)
    return key


def validate_pix_key(key: str, key_type: str) -> bool:
    if not key or not key_type or len(key) > MAX_KEY_LENGTH:
        return False
    digits = re.sub(r"\D", "", key)
    if key_type == "cpf":
        return len(digits) == 11
    if key_type == "cnpj":
        return len(digits) == 14
    if key_type == "email":
        return bool(_EMAIL_RE.match(key))
    if key_type == "phone":
        return bool(re.fullmatch(r"(55)?\d{10,11}", digits))
    if key_type == "random":
        return bool(_RANDOM_KEY_RE.match(key))
    return False


def to_txid(reference: str) -> str:
    """Reduce an arbitrary reference to the alphanumeric BR Code txid alphabet."""
    return _TXID_RE.sub("", reference.upper())[:MAX_TXID_LENGTH]


def build_pix_payload(
    *,
    key: str,
    amount: int,
    merchant_name: str,
    merchant_city: str,
    txid: str,
    description: str | None = None,
) -> str:
    account_info = _field("00", PIX_GUI) + _field("01", key)
    # the description is cut to whatever room the key leaves in field 26
    room = min(MAX_DESCRIPTION_LENGTH, MAX_FIELD_LENGTH - len(account_info) - 4)
    info = normalize_text(description, room) if description and room > 0 else ""
    if info:
        account_info += _field("02", info)
    amount_str = f"{Decimal(amount) / Decimal(100):.2f}"
    payload = "".join(
        [
            _field("00", "01"),
            _field("01", "12"),
            _field("26", account_info),
            _field("52", "0000"),
            _field("53", BRL_NUMERIC_CODE),
            _field("54", amount_str),
            _field("58", "BR"),
            _field("59", normalize_text(merchant_name, MAX_NAME_LENGTH)),
            _field("60", normalize_text(merchant_city, MAX_CITY_LENGTH)),
            _field("62", _field("05", to_txid(txid) or "***")),
            "6304",
        ]
    )
    return payload + crc16_ccitt(payload)


def parse_pix_payload(payload: str) -> dict[str, str]:
    """Split a BR Code into its top-level fields (nested templates left encoded)."""
    fields: dict[str, str] = {}
    position = 0
    while position < len(payload):
        field_id = payload[position : position + 2]
        length = int(payload[position + 2 : position + 4])
        fields[field_id] = payload[position + 4 : position + 4 + length]
        position += 4 + length
    return fields


def verify_pix_payload(payload: str) -> bool:
    if len(payload) < 8 or payload[-8:-4] != "6304":
        return False
    return crc16_ccitt(payload[:-4]) == payload[-4:]


__all__ = [
    "build_pix_payload",
    "crc16_ccitt",
    "normalize_pix_key",
    "normalize_text",
    "parse_pix_payload",
    "to_txid",
    "validate_pix_key",
    "verify_pix_payload",
]
