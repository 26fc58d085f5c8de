"""
Domain exceptions for the hierarchy import pipeline.

Per-record problems subclass RecordError; they exclude a single row and never
abort the batch. FileUnreadableError is the only fatal parse failure.
"""

from typing import Any, Dict, Optional


class HierarchyImportError(Exception):
    """Base class for all import pipeline errors."""


class FileUnreadableError(HierarchyImportError):
    """The uploaded payload cannot be parsed at all (bad zip, bad encoding, no header)."""

    code = 'FILE_UNREADABLE'

    def __init__(self, message: str, file_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file_type = file_type


class RecordError(HierarchyImportError):
    """
    A problem with one record.

    Attributes:
        code: Stable machine-readable error code
        field: Canonical field the error is attached to
        message: Human-readable description
        data: Offending raw value (may be None)
    """

    code = 'RECORD_ERROR'

    def __init__(self, field: str, message: str, data: Any = None):
        super().__init__(message)
        self.field = field
        self.message = message
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'field': self.field,
            'message': self.message,
            'data': self.data,
        }

    def __repr__(self):
        return f"<{type(self).__name__}(field='{self.field}', message='{self.message}')>"


class FieldMissingError(RecordError):
    code = 'FIELD_MISSING'


class FieldInvalidError(RecordError):
    code = 'FIELD_INVALID'


class DateOrderError(RecordError):
    code = 'DATE_ORDER'


class ParentNotFoundError(RecordError):
    code = 'PARENT_NOT_FOUND'


class OwnerNotFoundError(RecordError):
    code = 'OWNER_NOT_FOUND'


class DatabaseError(RecordError):
    code = 'DATABASE_ERROR'


class BatchLimitError(RecordError):
    code = 'BATCH_LIMIT'


class DuplicateTitleWarning(UserWarning):
    """Two records at one hierarchy level share a title; the later one wins lookups."""

    code = 'DUPLICATE_TITLE'
