"""Rate table and fee engine exports"""

from .fees import FeeEngine, FeeQuote, RateSource, StaticRateSource
from .table import DEFAULT_RATES, MethodRate, RateTable

__all__ = [
    "DEFAULT_RATES",
    "FeeEngine",
    "FeeQuote",
    "MethodRate",
    "RateSource",
    "RateTable",
    "StaticRateSource",
]
