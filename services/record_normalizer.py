"""
Record Normalizer - maps raw rows onto the canonical record shape.

Headers are canonicalized, defaults filled in and loosely typed spreadsheet
values coerced (dates, percentages, status aliases). Values that cannot be
coerced are passed through untouched so the validator reports them with the
offending data.
"""

import logging
import re
from typing import Any, Dict, Optional

from services.errors import FieldMissingError
from services.field_utils import CANONICAL_COLUMNS, canonical_key, is_blank, parse_date
from services.file_parser import RawRow
from services.import_schema import ImportContext, RecordStatus, RecordType

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('title', 'owner_email', 'start_date', 'end_date')
FREE_TEXT_FIELDS = ('title', 'description', 'department', 'parent_title')

# Spanish template values and legacy lifecycle names
STATUS_ALIASES = {
    'no_iniciado': RecordStatus.NOT_STARTED,
    'pendiente': RecordStatus.NOT_STARTED,
    'draft': RecordStatus.NOT_STARTED,
    'todo': RecordStatus.NOT_STARTED,
    'en_progreso': RecordStatus.IN_PROGRESS,
    'en_curso': RecordStatus.IN_PROGRESS,
    'active': RecordStatus.IN_PROGRESS,
    'started': RecordStatus.IN_PROGRESS,
    'completado': RecordStatus.COMPLETED,
    'done': RecordStatus.COMPLETED,
    'finished': RecordStatus.COMPLETED,
    'pausado': RecordStatus.PAUSED,
    'on_hold': RecordStatus.PAUSED,
    'cancelled': RecordStatus.PAUSED,
}

TYPE_ALIASES = {
    'objetivo': RecordType.OBJECTIVE,
    'iniciativa': RecordType.INITIATIVE,
    'actividad': RecordType.ACTIVITY,
}

_HTML_TAG = re.compile(r'<[^>]*>')
_PERCENT = re.compile(r'^(-?\d+(?:\.\d+)?)\s*%?$')


class RecordNormalizer:
    """Canonicalize one RawRow at a time under a fixed ImportContext."""

    def __init__(self, context: ImportContext):
        self.context = context

    def normalize(self, raw: RawRow) -> Dict[str, Any]:
        """
        Produce the canonical field dict for one row.

        Raises:
            FieldMissingError: title, owner_email, start_date or end_date is blank
        """
        fields = {}
        for header, value in raw.values.items():
            key = canonical_key(header)
            if key in CANONICAL_COLUMNS:
                fields[key] = value.strip() if isinstance(value, str) else value

        missing = [name for name in REQUIRED_FIELDS if is_blank(fields.get(name))]
        if missing:
            raise FieldMissingError(
                field=missing[0],
                message=f"Missing required fields: {', '.join(missing)}",
                data=None
            )

        for name in FREE_TEXT_FIELDS:
            if isinstance(fields.get(name), str):
                fields[name] = _HTML_TAG.sub('', fields[name]).strip()

        normalized = {
            'type': self._normalize_type(fields.get('type')),
            'title': self._text(fields.get('title')),
            'description': self._text(fields.get('description')) or '',
            'owner_email': self._text(fields.get('owner_email')).lower(),
            'department': self._department(fields.get('department'), raw.sheet),
            'status': self._normalize_status(fields.get('status')),
            'progress': self._normalize_progress(fields.get('progress')),
            'start_date': self._normalize_date(fields.get('start_date')),
            'end_date': self._normalize_date(fields.get('end_date')),
            'parent_title': self._text(fields.get('parent_title')) or None,
        }
        return normalized

    @staticmethod
    def _text(value: Any) -> str:
        if is_blank(value):
            return ''
        return str(value).strip()

    def _department(self, value: Any, sheet: Optional[str]) -> str:
        department = self._text(value) or (sheet or '')
        return self.context.department_mapping.get(department, department)

    @staticmethod
    def _normalize_type(value: Any) -> Any:
        if is_blank(value):
            return RecordType.OBJECTIVE.value
        key = canonical_key(value)
        if key in TYPE_ALIASES:
            return TYPE_ALIASES[key].value
        return key

    @staticmethod
    def _normalize_status(value: Any) -> Any:
        if is_blank(value):
            return RecordStatus.NOT_STARTED.value
        key = canonical_key(value).replace('-', '_')
        if key in STATUS_ALIASES:
            return STATUS_ALIASES[key].value
        return key

    @staticmethod
    def _normalize_progress(value: Any) -> Any:
        if is_blank(value):
            return 0
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else value
        match = _PERCENT.match(str(value).strip())
        if match:
            number = float(match.group(1))
            # Fractions are left for the validator to reject
            return int(number) if number.is_integer() else number
        return value

    @staticmethod
    def _normalize_date(value: Any) -> Any:
        parsed = parse_date(value)
        return parsed if parsed is not None else value
