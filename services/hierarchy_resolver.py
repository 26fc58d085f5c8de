"""
Hierarchy Resolver - title-based parent and owner resolution.

Levels are declared as data and processed in order. Each level's lookup
(title -> id) is filled from entities created earlier in the same batch;
misses fall back to entities that already exist in the tenant.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from services.errors import OwnerNotFoundError, ParentNotFoundError
from services.import_schema import ImportContext, ImportRecord, RecordType
from services.repository import HierarchyRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HierarchyLevel:
    record_type: RecordType
    parent_type: Optional[RecordType] = None


HIERARCHY_LEVELS = (
    HierarchyLevel(RecordType.OBJECTIVE),
    HierarchyLevel(RecordType.INITIATIVE, parent_type=RecordType.OBJECTIVE),
    HierarchyLevel(RecordType.ACTIVITY, parent_type=RecordType.INITIATIVE),
)


@dataclass
class ResolvedRecord:
    """A valid record with its owner and parent ids filled in."""

    position: int
    record: ImportRecord
    owner_id: int
    parent_id: Optional[int] = None
    entity_id: Optional[int] = None


class HierarchyResolver:
    """
    Resolves owners and parents for one batch.

    Lookups are per-batch state: create a new resolver for every import.
    """

    def __init__(self, repository: HierarchyRepository, context: ImportContext):
        self.repository = repository
        self.context = context
        self._lookups: Dict[RecordType, Dict[str, int]] = {
            level.record_type: {} for level in HIERARCHY_LEVELS
        }
        self._owner_cache: Dict[str, Optional[int]] = {}

    def resolve(self, level: HierarchyLevel, position: int, record: ImportRecord) -> ResolvedRecord:
        """
        Resolve one record of the given level.

        Raises:
            OwnerNotFoundError: owner_email matches no profile in the tenant
            ParentNotFoundError: parent_title matches no entity one level up
        """
        owner_id = self.resolve_owner(record.owner_email)
        parent_id = None
        if level.parent_type is not None:
            parent_id = self.lookup(level.parent_type, record.parent_title)
            if parent_id is None:
                raise ParentNotFoundError(
                    field='parent_title',
                    message=f"Parent {level.parent_type.value} not found: {record.parent_title}",
                    data=record.parent_title
                )
        return ResolvedRecord(position=position, record=record, owner_id=owner_id, parent_id=parent_id)

    def resolve_owner(self, email: str) -> int:
        key = email.strip().lower()
        if key not in self._owner_cache:
            self._owner_cache[key] = self.repository.find_profile_id_by_email(key, self.context.tenant_id)
        owner_id = self._owner_cache[key]
        if owner_id is None:
            raise OwnerNotFoundError(
                field='owner_email',
                message=f"Owner not found: {email}",
                data=email
            )
        return owner_id

    def lookup(self, record_type: RecordType, title: str) -> Optional[int]:
        """Batch-created entities first, then pre-existing ones in the tenant."""
        entity_id = self._lookups[record_type].get(title)
        if entity_id is not None:
            return entity_id
        entity_id = self.repository.find_id_by_title(record_type, title, self.context.tenant_id)
        if entity_id is not None:
            logger.debug(f"Resolved {record_type.value} '{title}' to existing id {entity_id}")
        return entity_id

    def register_created(self, level: HierarchyLevel, created: List[ResolvedRecord]) -> List[Tuple[int, str]]:
        """
        Add created entities to the level lookup.

        Duplicate titles overwrite earlier entries, so the last one processed
        wins. Returns (position, title) for every record that overwrote one.
        """
        lookup = self._lookups[level.record_type]
        collisions = []
        for item in created:
            title = item.record.title
            if title in lookup:
                logger.warning(
                    f"Duplicate {level.record_type.value} title '{title}' in batch; "
                    f"id {item.entity_id} replaces {lookup[title]} for parent lookups"
                )
                collisions.append((item.position, title))
            lookup[title] = item.entity_id
        return collisions
