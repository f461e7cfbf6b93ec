"""Data models and schemas for the pauta crawler."""

from .schema import (
    ROW_FIELDS,
    BatchRun,
    CellOutcome,
    CellResult,
    HearingRecord,
    TargetDate,
    record_rows,
)

__all__ = [
    "ROW_FIELDS",
    "BatchRun",
    "CellOutcome",
    "CellResult",
    "HearingRecord",
    "TargetDate",
    "record_rows",
]
