"""Utility modules for the pauta crawler."""

from .logger import setup_logger, CrawlerLogger
from .retry import RetryStrategy, RetryPolicy, with_retry
from .dates import build_date_range

__all__ = [
    "setup_logger",
    "CrawlerLogger",
    "RetryStrategy",
    "RetryPolicy",
    "with_retry",
    "build_date_range",
]
