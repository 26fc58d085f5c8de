"""
Import audit log model.

One row per import attempt: created in 'processing' state before records are
touched and closed exactly once with the final counts and serialized errors.
"""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, TIMESTAMP, ForeignKey,
    CheckConstraint, Index, text
)
from sqlalchemy.orm import relationship

from backend.models.schema import Base, JSONType


class ImportStatus(str, Enum):
    """Import log status."""
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'


class ImportLog(Base):
    """
    Durable audit record of a single hierarchy import.

    Counts always satisfy successful_records + failed_records == total_records
    once the log leaves the processing state.
    """

    __tablename__ = 'import_logs'
    __table_args__ = (
        CheckConstraint(
            "status IN ('processing', 'completed', 'failed')",
            name='import_logs_status_check'
        ),
        Index('idx_import_logs_company_created', 'company_id', 'created_at'),
        Index('idx_import_logs_status', 'status'),
        {'comment': 'Audit trail of hierarchy imports'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    company_id = Column(
        Integer,
        ForeignKey('companies.id', ondelete='CASCADE'),
        nullable=False,
        comment='Tenant the import ran for'
    )
    user_id = Column(
        Integer,
        ForeignKey('profiles.id', ondelete='SET NULL'),
        nullable=True,
        comment='Uploader profile'
    )
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(10), nullable=False)
    import_type = Column(
        String(50),
        server_default='hierarchy',
        nullable=False,
        comment='Kind of import, always hierarchy for now'
    )
    status = Column(
        String(20),
        server_default='processing',
        nullable=False
    )
    total_records = Column(Integer, server_default='0', nullable=False)
    successful_records = Column(Integer, server_default='0', nullable=False)
    failed_records = Column(Integer, server_default='0', nullable=False)
    error_details = Column(
        JSONType,
        nullable=True,
        comment='Serialized per-row errors'
    )
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False
    )

    uploader = relationship('Profile')

    def __repr__(self):
        return f"<ImportLog(id={self.id}, file='{self.file_name}', status='{self.status}')>"

    def to_dict(self) -> dict:
        """Convert log to dictionary representation."""
        return {
            'id': self.id,
            'company_id': self.company_id,
            'user_id': self.user_id,
            'file_name': self.file_name,
            'file_type': self.file_type,
            'import_type': self.import_type,
            'status': self.status,
            'total_records': self.total_records,
            'successful_records': self.successful_records,
            'failed_records': self.failed_records,
            'error_details': self.error_details or [],
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def duration_seconds(self) -> float:
        """Calculate import duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def is_complete(self) -> bool:
        return self.status in (ImportStatus.COMPLETED, ImportStatus.FAILED)
