"""SQLAlchemy-backed repository implementations."""

from .charge_store import SqlChargeStore

__all__ = ["SqlChargeStore"]
