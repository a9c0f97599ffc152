from .gateway import PaymentGateway

__all__ = [
    "PaymentGateway",
]
