"""Charge lifecycle and webhook dispatch service."""

__version__ = "0.1.0"
