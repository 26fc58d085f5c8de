"""
Validation Service - per-record schema and cross-field validation.

The schema is chosen by record type. Every violation becomes its own
RecordError; a row with any error is excluded from creation but never stops
the rest of the batch.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from services.errors import (
    BatchLimitError, DateOrderError, FieldInvalidError, FieldMissingError, RecordError
)
from services.import_schema import (
    DEFAULT_MAX_RECORDS, RECORD_SCHEMAS, ImportRecord, ObjectiveImport, RecordType
)

logger = logging.getLogger(__name__)

MISSING_ERROR_TYPES = {'missing', 'string_too_short'}
RANGE_ERROR_TYPES = {'greater_than_equal', 'less_than_equal'}


class ValidationService:
    """
    Framework-agnostic record validator.

    Holds no per-batch state beyond the configured record cap, so a single
    instance can validate any number of rows.
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        """
        Initialize validation service.

        Args:
            max_records: Rows beyond this position are rejected with BatchLimitError
        """
        self.max_records = max_records

    def batch_limit_error(self, position: int) -> Optional[BatchLimitError]:
        """Return a BatchLimitError for a 0-based position past the cap, else None."""
        if position < self.max_records:
            return None
        return BatchLimitError(
            field='records',
            message=f"Batch exceeds the maximum of {self.max_records} records",
            data=position + 1
        )

    def validate(self, fields: Dict[str, Any]) -> Tuple[Optional[ImportRecord], List[RecordError]]:
        """
        Validate one normalized record.

        Args:
            fields: Canonical field dict from the normalizer

        Returns:
            (record, []) when valid, (None, errors) otherwise
        """
        errors: List[RecordError] = []

        raw_type = fields.get('type')
        try:
            record_type = RecordType(raw_type)
        except ValueError:
            errors.append(FieldInvalidError(
                field='type',
                message=f"Invalid record type: {raw_type}. Use objective, initiative or activity",
                data=raw_type
            ))
            record_type = None

        schema = RECORD_SCHEMAS.get(record_type, ObjectiveImport)
        # None means "not provided" so required fields surface as missing
        payload = {
            key: value for key, value in fields.items()
            if key != 'type' and value is not None
        }

        record = None
        try:
            record = schema.model_validate(payload)
        except ValidationError as e:
            errors.extend(self._map_schema_errors(e, fields))

        start, end = fields.get('start_date'), fields.get('end_date')
        if isinstance(start, date) and isinstance(end, date) and end <= start:
            errors.append(DateOrderError(
                field='end_date',
                message='End date must be after start date',
                data=end.isoformat()
            ))

        if errors:
            logger.debug(f"Record '{fields.get('title')}' failed validation with {len(errors)} error(s)")
            return None, errors
        return record, []

    @staticmethod
    def _map_schema_errors(exc: ValidationError, fields: Dict[str, Any]) -> List[RecordError]:
        mapped = []
        for error in exc.errors():
            field_name = str(error['loc'][0]) if error['loc'] else 'record'
            value = fields.get(field_name)
            if error['type'] in MISSING_ERROR_TYPES:
                mapped.append(FieldMissingError(
                    field=field_name,
                    message=f"{field_name} is required",
                    data=value
                ))
            elif field_name == 'progress' and error['type'] in RANGE_ERROR_TYPES:
                mapped.append(FieldInvalidError(
                    field='progress',
                    message='Progress must be between 0 and 100',
                    data=value
                ))
            elif field_name == 'progress' and error['type'] == 'int_from_float':
                mapped.append(FieldInvalidError(
                    field='progress',
                    message='Progress must be a whole number',
                    data=value
                ))
            else:
                mapped.append(FieldInvalidError(
                    field=field_name,
                    message=error['msg'],
                    data=_serializable(value)
                ))
        return mapped


def _serializable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value
