"""Record sinks: delimited file, spreadsheet and relational store."""

from .base import BaseStorage
from .csv_storage import CSVStorage
from .xlsx_storage import XLSXStorage
from .database import AgendaStore, hearing_agenda

__all__ = ["BaseStorage", "CSVStorage", "XLSXStorage", "AgendaStore", "hearing_agenda"]
