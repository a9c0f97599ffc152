"""Inbound settlement notifications."""

import logging

from fastapi import APIRouter, Depends

from chargeflow.domain.charges.exceptions import ChargeError
from chargeflow.interfaces.http.deps import get_gateway
from chargeflow.interfaces.http.routers.errors import http_error
from chargeflow.schemas import ChargeResponse, PixSettlementNotification
from chargeflow.services import PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/pix", response_model=ChargeResponse, summary="PIX settlement notification by txid")
async def pix_settlement(
    payload: PixSettlementNotification,
    gateway: PaymentGateway = Depends(get_gateway),
):
    logger.info("PIX settlement notification for txid %s (e2e %s)", payload.txid, payload.end_to_end_id)
    try:
        charge = await gateway.confirm_settlement_by_reference(payload.txid)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return ChargeResponse.model_validate(charge)
