"""
CSV storage implementation.

Writes the delimited export: UTF-8 with a byte-order mark, one header row,
one row per record, fields containing the delimiter, a quote or a newline
quoted with doubled inner quotes.
"""

import csv
from typing import Any, Dict, List
from pathlib import Path
import logging

from ..exceptions import StorageError
from .base import BaseStorage

logger = logging.getLogger(__name__)


class CSVStorage(BaseStorage):
    """
    CSV storage backend.
    """

    name = 'csv'
    default_pattern = 'pauta_{timestamp}.csv'

    def __init__(self, output_dir: Path, config: Dict[str, Any], **kwargs):
        """
        Initialize CSV storage.

        Args:
            output_dir: Directory for output files
            config: Configuration dictionary with CSV-specific options
        """
        super().__init__(output_dir, config, **kwargs)
        self.encoding = config.get('encoding', 'utf-8-sig')  # BOM for Excel
        self.delimiter = config.get('delimiter', ';')

    def save(self, data: List[Dict[str, Any]], filename: str = None) -> Path:
        """
        Save rows to a CSV file. An empty list still produces the header row.

        Args:
            data: Rows keyed by fieldnames
            filename: Optional custom filename

        Returns:
            Path to the saved file
        """
        if not filename:
            filename = self.get_output_filename(self.filename_pattern)

        file_path = self.output_dir / filename

        try:
            with open(file_path, 'w', encoding=self.encoding, newline='') as f:
                writer = csv.DictWriter(
                    f,
                    fieldnames=self.fieldnames,
                    delimiter=self.delimiter,
                    quoting=csv.QUOTE_MINIMAL,
                    lineterminator='\n',
                    extrasaction='ignore'
                )
                writer.writeheader()
                for item in data:
                    writer.writerow({k: self._cell(item.get(k)) for k in self.fieldnames})

        except OSError as e:
            logger.error(f"Failed to save CSV file: {e}")
            raise StorageError(f"Failed to save CSV file: {e}", {'path': str(file_path)}) from e

        logger.info(f"Saved {len(data)} rows to {file_path}")
        self.file_path = file_path
        return file_path

    def load(self, file_path: Path) -> List[Dict[str, Any]]:
        """
        Load rows from a CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            List of loaded rows
        """
        with open(file_path, 'r', encoding=self.encoding, newline='') as f:
            reader = csv.DictReader(f, delimiter=self.delimiter)
            data = [dict(row) for row in reader]

        logger.info(f"Loaded {len(data)} rows from {file_path}")
        return data
