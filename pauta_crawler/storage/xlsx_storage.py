"""
XLSX storage implementation.

Writes the spreadsheet attached to the notification: one sheet, bold
filterable header row, columns sized to their longest value.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..exceptions import StorageError
from .base import BaseStorage

logger = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 12
MAX_COLUMN_WIDTH = 60


class XLSXStorage(BaseStorage):
    """
    Spreadsheet storage backend.
    """

    name = 'xlsx'
    default_pattern = 'pauta_{timestamp}.xlsx'

    def __init__(self, output_dir: Path, config: Dict[str, Any], **kwargs):
        super().__init__(output_dir, config, **kwargs)
        self.sheet_name = config.get('sheet_name', 'Pauta')
        self.creator = config.get('creator', 'pauta-crawler')

    def column_widths(self, data: List[Dict[str, Any]]) -> List[int]:
        """Longest cell per column plus padding, clamped to the width limits."""
        widths = []
        for field in self.fieldnames:
            longest = max([len(field)] + [len(self._cell(row.get(field))) for row in data])
            widths.append(max(MIN_COLUMN_WIDTH, min(MAX_COLUMN_WIDTH, longest + 2)))
        return widths

    def _cell(self, value: Any) -> str:
        # openpyxl rejects control characters that XML cannot carry
        return ILLEGAL_CHARACTERS_RE.sub("", super()._cell(value))

    def build_workbook(self, data: List[Dict[str, Any]]) -> Workbook:
        workbook = Workbook()
        workbook.properties.creator = self.creator
        sheet = workbook.active
        sheet.title = self.sheet_name

        sheet.append(self.fieldnames)
        for row in data:
            sheet.append([self._cell(row.get(field)) for field in self.fieldnames])

        for cell in sheet[1]:
            cell.font = Font(bold=True)
        last_column = get_column_letter(len(self.fieldnames))
        sheet.auto_filter.ref = f"A1:{last_column}1"

        for index, width in enumerate(self.column_widths(data), start=1):
            sheet.column_dimensions[get_column_letter(index)].width = width
        return workbook

    def save(self, data: List[Dict[str, Any]], filename: str = None) -> Path:
        if not filename:
            filename = self.get_output_filename(self.filename_pattern)

        file_path = self.output_dir / filename

        try:
            workbook = self.build_workbook(data)
        except ValueError as e:
            logger.error(f"Failed to build XLSX sheet: {e}")
            raise StorageError(f"Failed to build XLSX sheet: {e}", {'path': str(file_path)}) from e

        try:
            workbook.save(file_path)
        except OSError as e:
            logger.error(f"Failed to save XLSX file: {e}")
            raise StorageError(f"Failed to save XLSX file: {e}", {'path': str(file_path)}) from e

        logger.info(f"Saved {len(data)} rows to {file_path}")
        self.file_path = file_path
        return file_path

    def load(self, file_path: Path) -> List[Dict[str, Any]]:
        workbook = load_workbook(file_path, read_only=True)
        sheet = workbook[self.sheet_name]
        rows = sheet.iter_rows(values_only=True)
        header = [str(h) for h in next(rows)]
        data = [
            {key: ("" if value is None else str(value)) for key, value in zip(header, values)}
            for values in rows
        ]
        workbook.close()
        return data
