"""Merchant statistics and balance."""

from fastapi import APIRouter, Depends, Query

from chargeflow.domain.charges.reports import StatisticsPeriod
from chargeflow.interfaces.http.deps import get_gateway
from chargeflow.schemas import BalanceResponse, StatisticsResponse
from chargeflow.services import PaymentGateway

router = APIRouter()


@router.get("/statistics", response_model=StatisticsResponse, summary="Charge statistics for a period")
async def get_statistics(
    period: StatisticsPeriod = StatisticsPeriod.TODAY,
    currency: str = Query(default="BRL", min_length=3, max_length=3),
    gateway: PaymentGateway = Depends(get_gateway),
):
    statistics = await gateway.statistics(period, currency)
    return StatisticsResponse.model_validate(statistics)


@router.get("/balance", response_model=BalanceResponse, summary="Available and pending balance per currency")
async def get_balance(gateway: PaymentGateway = Depends(get_gateway)):
    return BalanceResponse.model_validate(await gateway.balance())
