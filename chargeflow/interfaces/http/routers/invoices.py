"""Invoice endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status

from chargeflow.domain.charges.exceptions import ChargeError
from chargeflow.interfaces.http.deps import get_gateway
from chargeflow.interfaces.http.routers.errors import http_error
from chargeflow.schemas import ChargeCreateRequest, InvoiceResponse
from chargeflow.services import PaymentGateway

router = APIRouter()


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a charge with payment link, QR codes and instructions",
)
async def create_invoice(
    payload: ChargeCreateRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=255),
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        invoice = await gateway.create_invoice(payload.to_domain(), idempotency_key)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return InvoiceResponse.model_validate(invoice)
