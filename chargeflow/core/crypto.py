"""Utilities for signing and verifying outbound webhook payloads."""

from __future__ import annotations

import hashlib
import hmac
import time


class WebhookSigner:
    """HMAC-SHA256 signatures in the ``t=<unix>,v1=<hex>`` header format.

    The MAC covers ``"<t>.<body>"`` so a captured body cannot be replayed with
    a different timestamp.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("webhook secret must not be empty")
        self._secret = secret.encode("utf-8")

    def _digest(self, payload: bytes, timestamp: int) -> str:
        message = str(timestamp).encode("ascii") + b"." + payload
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def sign(self, payload: bytes, timestamp: int | None = None) -> str:
        ts = int(time.time()) if timestamp is None else timestamp
        return f"t={ts},v1={self._digest(payload, ts)}"

    def verify(
        self,
        payload: bytes,
        header: str,
        tolerance_seconds: int = 300,
        now: int | None = None,
    ) -> bool:
        """Check ``header`` against ``payload``; stale timestamps are rejected."""
        try:
            parts = dict(item.split("=", 1) for item in header.split(","))
            timestamp = int(parts["t"])
            signature = parts["v1"]
        except (KeyError, ValueError):
            return False
        current = int(time.time()) if now is None else now
        if tolerance_seconds and abs(current - timestamp) > tolerance_seconds:
            return False
        return hmac.compare_digest(signature, self._digest(payload, timestamp))


__all__ = ["WebhookSigner"]
