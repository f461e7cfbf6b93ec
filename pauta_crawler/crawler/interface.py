"""
Base interface for the pauta crawler.

This module defines the abstract base class that crawler implementations
must inherit from.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import BatchRun


class BaseCrawler(ABC):
    """
    Abstract base class for the agenda crawler.

    Defines the contract that all crawler implementations must follow.
    """

    @abstractmethod
    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the crawler with configuration.

        Args:
            config: Configuration dictionary
        """

    @abstractmethod
    async def run(self, units: Optional[List[str]] = None) -> BatchRun:
        """
        Run the crawler.

        Args:
            units: Optional subset of unit labels to crawl

        Returns:
            BatchRun with collected data
        """
