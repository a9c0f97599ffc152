from fastapi import APIRouter, Depends

from chargeflow.core.security import require_api_key, require_settlement_signature
from chargeflow.interfaces.http.routers import charges, invoices, payment_methods, reports, webhooks


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    guarded = [Depends(require_api_key)]
    router.include_router(charges.router, prefix="/charges", tags=["charges"], dependencies=guarded)
    router.include_router(invoices.router, prefix="/invoices", tags=["invoices"], dependencies=guarded)
    router.include_router(
        payment_methods.router, prefix="/payment-methods", tags=["payment methods"], dependencies=guarded
    )
    router.include_router(reports.router, tags=["reports"], dependencies=guarded)
    router.include_router(
        webhooks.router,
        prefix="/webhooks",
        tags=["inbound webhooks"],
        dependencies=[Depends(require_settlement_signature)],
    )
    return router


__all__ = [
    "create_api_router",
]
