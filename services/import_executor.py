"""
Import Executor - creates resolved records one at a time.

Each record is committed on its own. A database failure rolls back that
record only and is recorded against its row; the rest of the batch goes on.
"""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from services.errors import DatabaseError
from services.hierarchy_resolver import HierarchyLevel, ResolvedRecord
from services.import_outcomes import ImportOutcomes
from services.import_schema import ImportContext, RecordType
from services.repository import HierarchyRepository

logger = logging.getLogger(__name__)


class ImportExecutor:
    """Per-record creation against the hierarchy repository."""

    def __init__(self, repository: HierarchyRepository, context: ImportContext):
        self.repository = repository
        self.context = context

    def _create(self, record_type: RecordType, item: ResolvedRecord) -> int:
        tenant_id = self.context.tenant_id
        if record_type == RecordType.OBJECTIVE:
            return self.repository.create_objective(item.record, item.owner_id, tenant_id)
        if record_type == RecordType.INITIATIVE:
            return self.repository.create_initiative(item.record, item.owner_id, item.parent_id, tenant_id)
        return self.repository.create_activity(item.record, item.owner_id, item.parent_id, tenant_id)

    def execute(self, level: HierarchyLevel, resolved: List[ResolvedRecord],
                outcomes: ImportOutcomes) -> List[ResolvedRecord]:
        """
        Create every resolved record of one level.

        Args:
            level: Hierarchy level being executed
            resolved: Records in processing order
            outcomes: Arena that receives created ids and database errors

        Returns:
            The records that were created, with entity_id set
        """
        created = []
        for item in resolved:
            try:
                entity_id = self._create(level.record_type, item)
                self.repository.commit()
            except SQLAlchemyError as e:
                self.repository.rollback()
                reason = getattr(e, 'orig', None) or e
                logger.error(f"Failed to create {level.record_type.value} '{item.record.title}': {reason}")
                outcomes.fail(item.position, DatabaseError(
                    field='database',
                    message=f"Failed to create {level.record_type.value}: {reason}",
                    data=item.record.title
                ))
                continue

            item.entity_id = entity_id
            outcomes.succeed(item.position, entity_id)
            created.append(item)

        logger.info(f"Created {len(created)} of {len(resolved)} {level.record_type.value} record(s)")
        return created
