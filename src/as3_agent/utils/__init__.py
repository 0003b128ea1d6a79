"""Utility modules for retries and logging."""
from .connection import with_retry
from .logging_config import setup_logging, timed

__all__ = [
    "with_retry",
    "setup_logging",
    "timed",
]
