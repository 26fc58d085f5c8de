"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, PaginationParams, PaginatedResponse, HealthCheckResponse
from api.schemas.import_schema import ImportLogItem, ImportLogDetail, ImportLogListResponse

__all__ = [
    # Common
    'ErrorResponse',
    'PaginationParams',
    'PaginatedResponse',
    'HealthCheckResponse',

    # Import
    'ImportLogItem',
    'ImportLogDetail',
    'ImportLogListResponse',
]
