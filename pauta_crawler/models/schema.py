"""
Data schemas for hearing agenda (pauta) crawling.

This module defines Pydantic models for the date cursor targets, the extracted
hearing records and the run-level batch that accumulates them.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DISPLAY_FORMAT = "%d/%m/%Y"
DISPLAY_PATTERN = re.compile(r"\b(\d{2})/(\d{2})/(\d{4})\b")

# Column order shared by every record sink.
ROW_FIELDS = (
    'generated_at',
    'unit',
    'date',
    'process_number',
    'session',
    'judge',
    'claimant',
    'respondent',
)


class TargetDate(BaseModel):
    """
    A calendar date the date cursor must be moved to.

    The canonical display string is the zero-padded DD/MM/YYYY form shown by
    the portal, which is also what date confirmation compares against.
    """

    model_config = ConfigDict(frozen=True)

    value: date

    @classmethod
    def of(cls, value: date) -> "TargetDate":
        return cls(value=value)

    @classmethod
    def from_display(cls, text: str) -> "TargetDate":
        """
        Parse a DD/MM/YYYY string.

        Raises:
            ValueError: If the text is not a valid display date
        """
        return cls(value=datetime.strptime(text.strip(), DISPLAY_FORMAT).date())

    @classmethod
    def search(cls, text: Optional[str]) -> Optional["TargetDate"]:
        """Find the first embedded DD/MM/YYYY token in free text."""
        match = DISPLAY_PATTERN.search(str(text or ""))
        if not match:
            return None
        try:
            return cls.from_display(match.group(0))
        except ValueError:
            return None

    @property
    def display(self) -> str:
        return self.value.strftime(DISPLAY_FORMAT)

    @property
    def day(self) -> int:
        return self.value.day

    @property
    def month(self) -> int:
        return self.value.month

    @property
    def year(self) -> int:
        return self.value.year

    @property
    def month_key(self) -> int:
        """Linearized (year, month) used to compare calendar pages."""
        return self.value.year * 12 + (self.value.month - 1)

    @property
    def is_business_day(self) -> bool:
        return self.value.weekday() < 5

    def __str__(self) -> str:
        return self.display


class HearingRecord(BaseModel):
    """One hearing entry read from the agenda list."""

    model_config = ConfigDict(frozen=True)

    process_number: str = Field("", description="Case (process) identifier")
    session: str = Field("", description="Session time and status label")
    judge: str = Field("", description="Presiding judge")
    claimant: str = Field("", description="Claimant party name")
    respondent: str = Field("", description="Respondent party name")

    @field_validator('process_number', 'session', 'judge', 'claimant', 'respondent', mode='before')
    @classmethod
    def clean_text(cls, v):
        """Collapse missing values to empty strings and normalize spaces."""
        if v is None:
            return ""
        return str(v).replace('\u00a0', ' ').strip()


class CellOutcome(str, Enum):
    """Result of processing one (unit, date) cell."""
    EXTRACTED = "extracted"
    SKIPPED = "skipped"


class CellResult(BaseModel):
    """Outcome and records of a single (unit, date) cell."""

    unit: str
    date: TargetDate
    outcome: CellOutcome
    records: List[HearingRecord] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def record_count(self) -> int:
        return len(self.records)


def record_rows(
    generated_at: datetime,
    unit: str,
    target: TargetDate,
    records: List[HearingRecord]
) -> List[Dict[str, Any]]:
    """
    Flatten records of one cell into sink rows keyed by ROW_FIELDS.

    Args:
        generated_at: Batch generation timestamp
        unit: Unit label the records belong to
        target: Date the records belong to
        records: Extracted records

    Returns:
        List of row dictionaries
    """
    stamp = generated_at.isoformat(timespec='seconds')
    return [
        {
            'generated_at': stamp,
            'unit': unit,
            'date': target.display,
            'process_number': record.process_number,
            'session': record.session,
            'judge': record.judge,
            'claimant': record.claimant,
            'respondent': record.respondent,
        }
        for record in records
    ]


class BatchRun(BaseModel):
    """
    Run-level accumulator.

    Created at run start, appended to by the orchestrator only, and handed to
    the sinks when the run finishes (successfully or not).
    """

    generated_at: datetime = Field(default_factory=datetime.now, description="Generation timestamp")
    units: List[str] = Field(default_factory=list, description="Frozen unit list for the run")
    dates: List[TargetDate] = Field(default_factory=list, description="Target dates for every unit")
    cells: List[CellResult] = Field(default_factory=list, description="Processed cells, in order")
    completed_at: Optional[datetime] = None
    fatal_error: Optional[str] = None

    def add_extracted(self, unit: str, target: TargetDate, records: List[HearingRecord]) -> CellResult:
        cell = CellResult(unit=unit, date=target, outcome=CellOutcome.EXTRACTED, records=list(records))
        self.cells.append(cell)
        return cell

    def add_skipped(self, unit: str, target: TargetDate, reason: str) -> CellResult:
        cell = CellResult(unit=unit, date=target, outcome=CellOutcome.SKIPPED, reason=reason)
        self.cells.append(cell)
        return cell

    def complete(self, error: Optional[str] = None) -> None:
        """Mark the batch as finished, optionally with the fatal error that ended it."""
        self.completed_at = datetime.now()
        if error:
            self.fatal_error = error

    @property
    def failed(self) -> bool:
        return self.fatal_error is not None

    @property
    def total_records(self) -> int:
        return sum(cell.record_count for cell in self.cells)

    @property
    def extracted_cells(self) -> List[CellResult]:
        return [c for c in self.cells if c.outcome == CellOutcome.EXTRACTED]

    @property
    def skipped_cells(self) -> List[CellResult]:
        return [c for c in self.cells if c.outcome == CellOutcome.SKIPPED]

    def rows(self) -> List[Dict[str, Any]]:
        """All records as flat sink rows, in extraction order."""
        rows = []
        for cell in self.extracted_cells:
            rows.extend(record_rows(self.generated_at, cell.unit, cell.date, cell.records))
        return rows

    def summary(self) -> Dict[str, Any]:
        return {
            'generated_at': self.generated_at.isoformat(timespec='seconds'),
            'units': len(self.units),
            'dates': len(self.dates),
            'cells_extracted': len(self.extracted_cells),
            'cells_skipped': len(self.skipped_cells),
            'records': self.total_records,
            'failed': self.failed,
        }
