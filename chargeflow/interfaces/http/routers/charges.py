"""Charge endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from chargeflow.domain.charges.exceptions import ChargeError
from chargeflow.domain.charges.models import ChargeFilters, ChargeStatus, PaymentMethod
from chargeflow.interfaces.http.deps import get_gateway
from chargeflow.interfaces.http.routers.errors import http_error
from chargeflow.schemas import (
    ChargeCreateRequest,
    ChargeFailRequest,
    ChargeListResponse,
    ChargeResponse,
    ConfirmationUpdate,
    RefundCreateRequest,
    RefundListResponse,
    RefundResponse,
    WebhookDeliveryListResponse,
    WebhookDeliveryResponse,
)
from chargeflow.services import PaymentGateway

router = APIRouter()


def _to_schema(charge) -> ChargeResponse:
    return ChargeResponse.model_validate(charge)


@router.post("", response_model=ChargeResponse, status_code=status.HTTP_201_CREATED, summary="Create a charge")
async def create_charge(
    payload: ChargeCreateRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key", max_length=255),
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        charge = await gateway.create_charge(payload.to_domain(), idempotency_key)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.get("", response_model=ChargeListResponse, summary="List charges, most recent first")
async def list_charges(
    customer: Optional[str] = Query(default=None, description="Substring of customer name or email"),
    payment_method: Optional[str] = None,
    status_filter: list[ChargeStatus] = Query(default=[], alias="status"),
    created_gte: Optional[datetime] = None,
    created_lte: Optional[datetime] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        filters = ChargeFilters(
            customer=customer,
            payment_method=PaymentMethod.parse(payment_method) if payment_method else None,
            statuses=tuple(status_filter),
            created_gte=created_gte,
            created_lte=created_lte,
            limit=limit,
            offset=offset,
        )
        charges = await gateway.list_charges(filters)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return ChargeListResponse(
        total=len(charges),
        limit=limit,
        offset=offset,
        charges=[_to_schema(charge) for charge in charges],
    )


@router.get("/{charge_id}", response_model=ChargeResponse, summary="Get a charge")
async def get_charge(charge_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    try:
        charge = await gateway.get_charge(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.post("/{charge_id}/poll", response_model=ChargeResponse, summary="Advance a charge and return it")
async def poll_charge(charge_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    try:
        charge = await gateway.poll_status(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.post("/{charge_id}/cancel", response_model=ChargeResponse, summary="Cancel a pending charge")
async def cancel_charge(charge_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    try:
        charge = await gateway.cancel_charge(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.post("/{charge_id}/fail", response_model=ChargeResponse, summary="Mark a pending charge as failed")
async def fail_charge(
    charge_id: str,
    payload: ChargeFailRequest,
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        charge = await gateway.fail_charge(charge_id, payload.reason)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.post(
    "/{charge_id}/confirmations",
    response_model=ChargeResponse,
    summary="Record network confirmations for a crypto charge",
)
async def record_confirmations(
    charge_id: str,
    payload: ConfirmationUpdate,
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        charge = await gateway.record_confirmations(
            charge_id, payload.confirmations, allow_overflow=payload.allow_overflow
        )
    except ChargeError as exc:
        raise http_error(exc) from exc
    return _to_schema(charge)


@router.post(
    "/{charge_id}/refunds",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Refund part or all of a charge",
)
async def create_refund(
    charge_id: str,
    payload: RefundCreateRequest,
    gateway: PaymentGateway = Depends(get_gateway),
):
    try:
        refund = await gateway.create_refund(charge_id, payload.amount, payload.reason, dict(payload.metadata))
    except ChargeError as exc:
        raise http_error(exc) from exc
    return RefundResponse.model_validate(refund)


@router.get("/{charge_id}/refunds", response_model=RefundListResponse, summary="List refunds of a charge")
async def list_refunds(charge_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    try:
        refunds = await gateway.list_refunds(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return RefundListResponse(
        total=len(refunds),
        refunds=[RefundResponse.model_validate(refund) for refund in refunds],
    )


@router.get(
    "/{charge_id}/webhooks",
    response_model=WebhookDeliveryListResponse,
    summary="List webhook delivery attempts for a charge",
)
async def list_webhook_deliveries(charge_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    try:
        deliveries = await gateway.list_webhook_deliveries(charge_id)
    except ChargeError as exc:
        raise http_error(exc) from exc
    return WebhookDeliveryListResponse(
        total=len(deliveries),
        deliveries=[WebhookDeliveryResponse.model_validate(delivery) for delivery in deliveries],
    )
