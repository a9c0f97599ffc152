"""Reusable FastAPI dependencies."""

from .gateway import get_container, get_gateway

__all__ = [
    "get_container",
    "get_gateway",
]
