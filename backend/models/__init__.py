"""Models package for the hierarchy import system."""
from backend.models.schema import Base, Company, Profile, Objective, Initiative, Activity
from backend.models.import_log import ImportLog, ImportStatus

__all__ = [
    'Base', 'Company', 'Profile', 'Objective', 'Initiative', 'Activity',
    'ImportLog', 'ImportStatus',
]
