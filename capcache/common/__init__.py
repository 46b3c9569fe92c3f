"""
Common utilities for the AEMET CAP cache.
"""

from .retry import backoff_delay, retry_with_backoff

__all__ = ["backoff_delay", "retry_with_backoff"]
