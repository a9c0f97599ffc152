"""Background workers"""

from .lifecycle import ChargeLifecycleWorker

__all__ = ["ChargeLifecycleWorker"]
