"""Bearer API-key guard for the HTTP API."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chargeflow.core.config import Settings
from chargeflow.core.crypto import WebhookSigner

security = HTTPBearer(auto_error=False)


def api_key_matches(settings: Settings, candidate: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), settings.security.api_key.encode("utf-8"))


async def require_api_key(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> None:
    settings: Settings = request.app.state.container.settings
    if not settings.security.require_api_key:
        return
    if credentials is None or not api_key_matches(settings, credentials.credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_settlement_signature(request: Request) -> None:
    """Reject inbound settlement notifications not signed with the provider secret."""
    settings: Settings = request.app.state.container.settings
    header = request.headers.get(settings.security.settlement_signature_header)
    body = await request.body()
    signer = WebhookSigner(settings.security.settlement_secret)
    if not header or not signer.verify(body, header, settings.security.settlement_tolerance_seconds):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing settlement signature",
        )


__all__ = ["api_key_matches", "require_api_key", "require_settlement_signature", "security"]
