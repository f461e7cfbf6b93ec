"""
Base storage interface.

This module defines the abstract base class for the file sinks.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import logging

from ..models import ROW_FIELDS

logger = logging.getLogger(__name__)


class BaseStorage(ABC):
    """
    Abstract base class for file sinks.

    All sinks write the same columns (ROW_FIELDS) in the same order.
    """

    name = 'file'
    default_pattern = 'pauta_{timestamp}.dat'

    def __init__(self, output_dir: Path, config: Dict[str, Any], fieldnames: Sequence[str] = ROW_FIELDS):
        """
        Initialize storage backend.

        Args:
            output_dir: Directory for output files
            config: Configuration dictionary
            fieldnames: Column order
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.config = config
        self.fieldnames = list(fieldnames)
        self.filename_pattern = config.get('filename_pattern', self.default_pattern)
        self.file_path: Optional[Path] = None

    @abstractmethod
    def save(self, data: List[Dict[str, Any]], filename: str = None) -> Path:
        """
        Save rows to a new file.

        Args:
            data: Rows keyed by fieldnames
            filename: Optional custom filename

        Returns:
            Path to the saved file
        """

    @abstractmethod
    def load(self, file_path: Path) -> List[Dict[str, Any]]:
        """
        Load rows back from a file written by save().

        Args:
            file_path: Path to the file to load

        Returns:
            List of row dictionaries
        """

    def get_output_filename(self, pattern: str, timestamp: Optional[datetime] = None) -> str:
        """
        Generate output filename from pattern.

        Args:
            pattern: Filename pattern (may include {timestamp})
            timestamp: Time to embed (defaults to now)

        Returns:
            Generated filename
        """
        stamp = (timestamp or datetime.now()).strftime("%Y%m%d_%H%M%S")
        return pattern.format(timestamp=stamp)

    def _cell(self, value: Any) -> str:
        return "" if value is None else str(value)
