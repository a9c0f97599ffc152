"""Payment instruction domain exports"""

from .generator import InstructionGenerator, MerchantProfile, build_crypto_uri
from .pix import build_pix_payload, validate_pix_key, verify_pix_payload

__all__ = [
    "InstructionGenerator",
    "MerchantProfile",
    "build_crypto_uri",
    "build_pix_payload",
    "validate_pix_key",
    "verify_pix_payload",
]
