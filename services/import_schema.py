"""
Record and result types for the hierarchy import pipeline.

Record schemas are selected by record type: objectives may omit the parent,
initiatives and activities must name one.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
DEPARTMENT_MAX_LENGTH = 100
DEFAULT_MAX_RECORDS = 1000
PREVIEW_LIMIT = 10


class RecordType(str, Enum):
    """Hierarchy level of an import record."""
    OBJECTIVE = 'objective'
    INITIATIVE = 'initiative'
    ACTIVITY = 'activity'


class RecordStatus(str, Enum):
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    PAUSED = 'paused'


class ImportRecordBase(BaseModel):
    """Fields shared by every hierarchy level."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field('', max_length=DESCRIPTION_MAX_LENGTH)
    owner_email: EmailStr
    department: str = Field('', max_length=DEPARTMENT_MAX_LENGTH)
    status: RecordStatus = RecordStatus.NOT_STARTED
    progress: int = Field(0, ge=0, le=100)
    # Strict so numeric strings are never read as Unix timestamps
    start_date: date = Field(..., strict=True)
    end_date: date = Field(..., strict=True)


class ObjectiveImport(ImportRecordBase):
    type: RecordType = RecordType.OBJECTIVE
    parent_title: Optional[str] = Field(None, max_length=TITLE_MAX_LENGTH)


class InitiativeImport(ImportRecordBase):
    type: RecordType = RecordType.INITIATIVE
    parent_title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)


class ActivityImport(ImportRecordBase):
    type: RecordType = RecordType.ACTIVITY
    parent_title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)


ImportRecord = Union[ObjectiveImport, InitiativeImport, ActivityImport]

RECORD_SCHEMAS = {
    RecordType.OBJECTIVE: ObjectiveImport,
    RecordType.INITIATIVE: InitiativeImport,
    RecordType.ACTIVITY: ActivityImport,
}


class ImportErrorDetail(BaseModel):
    """One problem with one input row. Row 0 is reserved for file-level errors."""

    row: int = Field(..., ge=0, description="1-based row as displayed in the source file")
    field: str
    message: str
    data: Any = None
    code: str = 'RECORD_ERROR'
    sheet: Optional[str] = None


class ImportWarningDetail(BaseModel):
    row: int
    field: str
    message: str
    code: str
    sheet: Optional[str] = None


class ImportResult(BaseModel):
    """Outcome of one import run."""

    success: bool
    total_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    errors: List[ImportErrorDetail] = Field(default_factory=list)
    warnings: List[ImportWarningDetail] = Field(default_factory=list)
    import_log_id: Optional[int] = None
    processing_time_ms: int = 0

    @model_validator(mode='after')
    def check_counts(self):
        if self.successful_records + self.failed_records != self.total_records:
            raise ValueError('successful_records + failed_records must equal total_records')
        return self


class ImportPreview(BaseModel):
    """Parse and validate outcome without any writes."""

    total_records: int = 0
    valid_records: int = 0
    invalid_records: int = 0
    records: List[Dict[str, Any]] = Field(default_factory=list)
    errors: List[ImportErrorDetail] = Field(default_factory=list)


class PeriodFilter(BaseModel):
    """
    Optional date window applied to rows before normalization.

    Either bound may be omitted; the order is only checked when both are set.
    """

    period_start: Optional[date] = None
    period_end: Optional[date] = None

    @model_validator(mode='after')
    def check_order(self):
        if self.period_start and self.period_end and self.period_end <= self.period_start:
            raise ValueError('period_end must be after period_start')
        return self

    def contains(self, start: Optional[date], end: Optional[date]) -> bool:
        """Missing row dates pass the bound they would be checked against."""
        if self.period_start is not None and start is not None and start < self.period_start:
            return False
        if self.period_end is not None and end is not None and end > self.period_end:
            return False
        return True


@dataclass(frozen=True)
class ImportContext:
    """Ambient values threaded through every pipeline stage."""

    tenant_id: int
    uploader_id: Optional[int] = None
    department_mapping: Mapping[str, str] = field(default_factory=dict)
    max_records: int = DEFAULT_MAX_RECORDS
