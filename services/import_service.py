"""
Hierarchy Import Service - Framework-agnostic import pipeline.

Runs one uploaded file through parse -> normalize -> validate -> resolve ->
execute and returns a single ImportResult. Partial success is allowed: rows
with errors are skipped and reported, every other row is created and
committed on its own.
"""

import logging
import time
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from backend.models.import_log import ImportStatus
from services.errors import FileUnreadableError, RecordError
from services.file_parser import FileParser, RawRow
from services.hierarchy_resolver import HIERARCHY_LEVELS, HierarchyResolver
from services.import_executor import ImportExecutor
from services.import_logger import ImportLogger
from services.import_outcomes import ImportOutcomes
from services.import_schema import (
    PREVIEW_LIMIT, ImportContext, ImportErrorDetail, ImportPreview, ImportRecord,
    ImportResult, PeriodFilter, RecordType
)
from services.record_normalizer import RecordNormalizer
from services.repository import HierarchyRepository
from services.validation_service import ValidationService

logger = logging.getLogger(__name__)


class BatchState(str, Enum):
    """Lifecycle of one import batch."""
    UPLOADED = 'uploaded'
    PARSING = 'parsing'
    VALIDATING = 'validating'
    RESOLVING = 'resolving'
    EXECUTING = 'executing'
    COMPLETED = 'completed'
    FAILED = 'failed'


ALLOWED_TRANSITIONS = {
    BatchState.UPLOADED: {BatchState.PARSING},
    BatchState.PARSING: {BatchState.VALIDATING, BatchState.FAILED},
    BatchState.VALIDATING: {BatchState.RESOLVING, BatchState.FAILED},
    BatchState.RESOLVING: {BatchState.EXECUTING, BatchState.FAILED},
    BatchState.EXECUTING: {BatchState.COMPLETED, BatchState.FAILED},
    BatchState.COMPLETED: set(),
    BatchState.FAILED: set(),
}


def file_error(message: str) -> ImportErrorDetail:
    """Error detail for a problem with the file as a whole (row 0, field 'file')."""
    return ImportErrorDetail(row=0, field='file', message=message, data=None, code=FileUnreadableError.code)


class HierarchyImportService:
    """
    Framework-agnostic hierarchy import service.

    One instance handles one batch: the state machine and the resolver's
    lookups are per batch.
    """

    def __init__(self, db_session: Session, context: ImportContext,
                 period: Optional[PeriodFilter] = None):
        """
        Initialize hierarchy import service.

        Args:
            db_session: SQLAlchemy database session
            context: Tenant, uploader, department mapping and record cap
            period: Optional date window; rows outside it are ignored
        """
        self.session = db_session
        self.context = context

        self.parser = FileParser(period=period)
        self.normalizer = RecordNormalizer(context)
        self.validator = ValidationService(max_records=context.max_records)
        self.repository = HierarchyRepository(db_session)
        self.import_logger = ImportLogger(db_session)

        self.state = BatchState.UPLOADED

    def _transition(self, new_state: BatchState):
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid batch transition {self.state.value} -> {new_state.value}")
        logger.info(f"Batch state: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _validate_rows(self, rows: List[RawRow],
                       outcomes: ImportOutcomes) -> Dict[RecordType, List[Tuple[int, ImportRecord]]]:
        """Normalize and validate every row, grouping valid records by level."""
        valid: Dict[RecordType, List[Tuple[int, ImportRecord]]] = {
            level.record_type: [] for level in HIERARCHY_LEVELS
        }
        for position, raw in enumerate(rows):
            outcomes.register(position, raw.row, raw.sheet)

            limit_error = self.validator.batch_limit_error(position)
            if limit_error is not None:
                outcomes.fail(position, limit_error)
                continue

            try:
                fields = self.normalizer.normalize(raw)
            except RecordError as e:
                outcomes.fail(position, e)
                continue

            record, errors = self.validator.validate(fields)
            for error in errors:
                outcomes.fail(position, error)
            if record is not None:
                valid[record.type].append((position, record))

        if len(rows) > self.context.max_records:
            logger.warning(
                f"Batch has {len(rows)} rows; rows beyond {self.context.max_records} were rejected"
            )
        return valid

    def _resolve_and_execute(self, valid: Dict[RecordType, List[Tuple[int, ImportRecord]]],
                             outcomes: ImportOutcomes):
        resolver = HierarchyResolver(self.repository, self.context)
        executor = ImportExecutor(self.repository, self.context)

        self._transition(BatchState.RESOLVING)
        for level in HIERARCHY_LEVELS:
            pending = valid[level.record_type]
            resolved = []
            for position, record in pending:
                try:
                    resolved.append(resolver.resolve(level, position, record))
                except RecordError as e:
                    outcomes.fail(position, e)

            logger.info(
                f"Resolved {len(resolved)} of {len(pending)} {level.record_type.value} record(s)"
            )
            if self.state == BatchState.RESOLVING:
                self._transition(BatchState.EXECUTING)

            created = executor.execute(level, resolved, outcomes)
            for position, title in resolver.register_created(level, created):
                outcomes.warn(
                    position,
                    'title',
                    f"Duplicate {level.record_type.value} title in batch: {title}. "
                    f"Later rows referencing it attach to this one",
                    code='DUPLICATE_TITLE'
                )

    def import_file(self, content: bytes, file_name: str, file_type: str) -> ImportResult:
        """
        Main import workflow.

        Args:
            content: Raw file bytes
            file_name: Original file name (for the audit log)
            file_type: 'xlsx' or 'csv'

        Returns:
            ImportResult with counts, per-row errors, warnings and the log id
        """
        started = time.monotonic()
        file_type = (file_type or '').lower().lstrip('.')[:10] or 'unknown'
        logger.info(f"Starting import of '{file_name}' for tenant {self.context.tenant_id}")

        self._transition(BatchState.PARSING)
        try:
            rows = self.parser.parse(content, file_type)
        except FileUnreadableError as e:
            logger.error(f"Cannot read '{file_name}': {e.message}")
            errors = [file_error(e.message)]
            log_id = self.import_logger.create(file_name, file_type, 0, self.context)
            self.import_logger.update(log_id, ImportStatus.FAILED, 0, 0, errors)
            self._transition(BatchState.FAILED)
            return ImportResult(
                success=False,
                errors=errors,
                import_log_id=log_id,
                processing_time_ms=_elapsed_ms(started),
            )

        log_id = self.import_logger.create(file_name, file_type, len(rows), self.context)
        outcomes = ImportOutcomes()

        try:
            self._transition(BatchState.VALIDATING)
            valid = self._validate_rows(rows, outcomes)

            self._resolve_and_execute(valid, outcomes)

            errors = outcomes.error_details()
            status = ImportStatus.COMPLETED if not errors else ImportStatus.FAILED
            self.import_logger.update(log_id, status, outcomes.successful, outcomes.failed, errors)
        except Exception as e:
            logger.error(f"Import failed: {e}", exc_info=True)
            self.session.rollback()
            self.import_logger.update(
                log_id,
                ImportStatus.FAILED,
                outcomes.successful,
                len(rows) - outcomes.successful,
                outcomes.error_details() + [ImportErrorDetail(
                    row=0, field='import', message=str(e), code='UNEXPECTED_ERROR'
                )],
            )
            self.state = BatchState.FAILED
            raise

        self._transition(BatchState.COMPLETED if not errors else BatchState.FAILED)
        result = ImportResult(
            success=not errors,
            total_records=outcomes.total,
            successful_records=outcomes.successful,
            failed_records=outcomes.failed,
            errors=errors,
            warnings=outcomes.warning_details(),
            import_log_id=log_id,
            processing_time_ms=_elapsed_ms(started),
        )
        logger.info(
            f"Import of '{file_name}' finished: {result.successful_records}/{result.total_records} "
            f"created, {len(errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def preview_file(self, content: bytes, file_type: str) -> ImportPreview:
        """
        Parse and validate without writing anything.

        Owners and parents are not resolved; only the first valid records
        are returned for display.
        """
        self._transition(BatchState.PARSING)
        try:
            rows = self.parser.parse(content, file_type)
        except FileUnreadableError as e:
            self._transition(BatchState.FAILED)
            return ImportPreview(errors=[file_error(e.message)])

        self._transition(BatchState.VALIDATING)
        outcomes = ImportOutcomes()
        valid = self._validate_rows(rows, outcomes)

        records = []
        for position, record in sorted(
            (item for items in valid.values() for item in items),
            key=lambda item: item[0]
        ):
            if len(records) >= PREVIEW_LIMIT:
                break
            records.append({
                'row': outcomes[position].row,
                'sheet': outcomes[position].sheet,
                **record.model_dump(mode='json'),
            })

        valid_count = sum(len(items) for items in valid.values())
        return ImportPreview(
            total_records=len(rows),
            valid_records=valid_count,
            invalid_records=len(rows) - valid_count,
            records=records,
            errors=outcomes.error_details(),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
