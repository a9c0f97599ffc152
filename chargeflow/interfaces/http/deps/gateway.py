"""Gateway dependency providers."""

from fastapi import Depends, Request

from chargeflow.core.container import ApplicationContainer
from chargeflow.services import PaymentGateway


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_gateway(container: ApplicationContainer = Depends(get_container)) -> PaymentGateway:
    return container.gateway


__all__ = [
    "get_container",
    "get_gateway",
]
