"""
Per-row outcome arena for one import run.

Every parsed row is registered once under its parse position. Errors,
warnings and created ids are attached to that slot, so counts and row
correlation come straight from the arena instead of ad hoc list mutation.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from services.errors import RecordError
from services.import_schema import ImportErrorDetail, ImportWarningDetail


@dataclass
class RowOutcome:
    """What happened to a single input row."""

    position: int
    row: int
    sheet: Optional[str] = None
    errors: List[RecordError] = field(default_factory=list)
    warnings: List[ImportWarningDetail] = field(default_factory=list)
    entity_id: Optional[int] = None

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def created(self) -> bool:
        return self.entity_id is not None and not self.errors


class ImportOutcomes:
    """Indexed result arena: parse position -> RowOutcome."""

    def __init__(self):
        self._rows: Dict[int, RowOutcome] = {}

    def register(self, position: int, row: int, sheet: Optional[str] = None) -> RowOutcome:
        if position in self._rows:
            raise ValueError(f"Row position {position} already registered")
        outcome = RowOutcome(position=position, row=row, sheet=sheet)
        self._rows[position] = outcome
        return outcome

    def __getitem__(self, position: int) -> RowOutcome:
        return self._rows[position]

    def __len__(self) -> int:
        return len(self._rows)

    def fail(self, position: int, error: RecordError):
        self._rows[position].errors.append(error)

    def succeed(self, position: int, entity_id: int):
        self._rows[position].entity_id = entity_id

    def warn(self, position: int, field_name: str, message: str, code: str):
        outcome = self._rows[position]
        outcome.warnings.append(ImportWarningDetail(
            row=outcome.row,
            field=field_name,
            message=message,
            code=code,
            sheet=outcome.sheet,
        ))

    def is_failed(self, position: int) -> bool:
        return self._rows[position].failed

    @property
    def total(self) -> int:
        return len(self._rows)

    @property
    def successful(self) -> int:
        return sum(1 for outcome in self._rows.values() if outcome.created)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    def error_details(self) -> List[ImportErrorDetail]:
        """All errors in row order, as serializable details."""
        details = []
        for position in sorted(self._rows):
            outcome = self._rows[position]
            for error in outcome.errors:
                details.append(ImportErrorDetail(
                    row=outcome.row,
                    field=error.field,
                    message=error.message,
                    data=error.data,
                    code=error.code,
                    sheet=outcome.sheet,
                ))
        return details

    def warning_details(self) -> List[ImportWarningDetail]:
        details = []
        for position in sorted(self._rows):
            details.extend(self._rows[position].warnings)
        return details
