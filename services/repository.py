"""
Hierarchy Repository - SQLAlchemy persistence for imported records.

Every lookup and every insert is scoped to a tenant (company). Create calls
add and flush; committing is left to the caller so each record can be
committed or rolled back on its own.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.models.schema import Activity, Initiative, Objective, Profile
from services.import_schema import ImportRecord, RecordType

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    RecordType.OBJECTIVE: Objective,
    RecordType.INITIATIVE: Initiative,
    RecordType.ACTIVITY: Activity,
}


class HierarchyRepository:
    """Tenant-scoped reads and writes for objectives, initiatives and activities."""

    def __init__(self, db_session: Session):
        self.session = db_session

    def _common_columns(self, record: ImportRecord, owner_id: int, tenant_id: int) -> dict:
        return {
            'title': record.title,
            'description': record.description,
            'department': record.department or None,
            'status': record.status.value,
            'progress': record.progress,
            'start_date': record.start_date,
            'end_date': record.end_date,
            'owner_id': owner_id,
            'company_id': tenant_id,
        }

    def _insert(self, entity) -> int:
        self.session.add(entity)
        self.session.flush()
        logger.debug(f"Inserted {entity!r}")
        return entity.id

    def create_objective(self, record: ImportRecord, owner_id: int, tenant_id: int) -> int:
        return self._insert(Objective(**self._common_columns(record, owner_id, tenant_id)))

    def create_initiative(self, record: ImportRecord, owner_id: int, objective_id: int,
                          tenant_id: int) -> int:
        return self._insert(Initiative(
            objective_id=objective_id,
            **self._common_columns(record, owner_id, tenant_id)
        ))

    def create_activity(self, record: ImportRecord, owner_id: int, initiative_id: int,
                        tenant_id: int) -> int:
        return self._insert(Activity(
            initiative_id=initiative_id,
            **self._common_columns(record, owner_id, tenant_id)
        ))

    def find_id_by_title(self, record_type: RecordType, title: str, tenant_id: int) -> Optional[int]:
        """Most recently created entity of this type and title in the tenant, if any."""
        model = ENTITY_MODELS[RecordType(record_type)]
        row = (
            self.session.query(model.id)
            .filter(model.company_id == tenant_id, model.title == title)
            .order_by(model.id.desc())
            .first()
        )
        return row[0] if row else None

    def find_profile_id_by_email(self, email: str, tenant_id: int) -> Optional[int]:
        row = (
            self.session.query(Profile.id)
            .filter(
                Profile.company_id == tenant_id,
                func.lower(Profile.email) == email.strip().lower()
            )
            .first()
        )
        return row[0] if row else None

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
