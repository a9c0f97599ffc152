"""Payment method catalogue."""

from fastapi import APIRouter, Depends

from chargeflow.interfaces.http.deps import get_gateway
from chargeflow.schemas import PaymentMethodListResponse, PaymentMethodResponse
from chargeflow.services import PaymentGateway

router = APIRouter()


@router.get("", response_model=PaymentMethodListResponse, summary="List enabled payment methods and fees")
async def list_payment_methods(gateway: PaymentGateway = Depends(get_gateway)):
    return PaymentMethodListResponse(
        methods=[PaymentMethodResponse.model_validate(rate) for rate in gateway.payment_methods()]
    )
