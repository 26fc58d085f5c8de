"""
Import Logger - durable audit trail of import attempts.

A log row is created in 'processing' state before any record is touched and
closed exactly once with the final status, counts and serialized errors.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from backend.models.import_log import ImportLog, ImportStatus
from services.import_schema import ImportContext, ImportErrorDetail

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


class ImportLogger:
    """ImportLog collaborator: create, update once, and read history."""

    def __init__(self, db_session: Session):
        self.session = db_session

    def create(self, file_name: str, file_type: str, total_records: int,
               context: ImportContext) -> int:
        """
        Open a log for a new import.

        Returns:
            The new log id
        """
        log = ImportLog(
            company_id=context.tenant_id,
            user_id=context.uploader_id,
            file_name=file_name,
            file_type=file_type,
            import_type='hierarchy',
            status=ImportStatus.PROCESSING.value,
            total_records=total_records,
            successful_records=0,
            failed_records=0,
            started_at=datetime.utcnow(),
        )
        self.session.add(log)
        self.session.commit()
        logger.info(f"Opened import log {log.id} for '{file_name}' ({total_records} records)")
        return log.id

    def update(self, log_id: int, status: ImportStatus, successful: int, failed: int,
               errors: List[ImportErrorDetail]):
        """
        Close a log with final results.

        Raises:
            LookupError: No log with this id
            ValueError: The log was already closed
        """
        log = self.session.get(ImportLog, log_id)
        if log is None:
            raise LookupError(f"Import log {log_id} not found")
        if log.status != ImportStatus.PROCESSING.value:
            raise ValueError(f"Import log {log_id} already closed with status '{log.status}'")

        now = datetime.utcnow()
        log.status = ImportStatus(status).value
        log.successful_records = successful
        log.failed_records = failed
        log.error_details = [error.model_dump(mode='json') for error in errors]
        log.completed_at = now
        log.updated_at = now
        self.session.commit()

        logger.info(
            f"Closed import log {log_id}: {log.status} "
            f"({successful} succeeded, {failed} failed, {len(errors)} errors)"
        )

    def get(self, log_id: int, tenant_id: int) -> Optional[ImportLog]:
        return (
            self.session.query(ImportLog)
            .filter(ImportLog.id == log_id, ImportLog.company_id == tenant_id)
            .first()
        )

    def history(self, tenant_id: int, limit: int = DEFAULT_HISTORY_LIMIT,
                offset: int = 0) -> List[ImportLog]:
        """Most recent logs for a tenant, newest first."""
        return (
            self.session.query(ImportLog)
            .filter(ImportLog.company_id == tenant_id)
            .order_by(ImportLog.created_at.desc(), ImportLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self, tenant_id: int) -> int:
        return self.session.query(ImportLog).filter(ImportLog.company_id == tenant_id).count()
