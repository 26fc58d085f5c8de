"""
Import-related Pydantic schemas.

This module contains response schemas for import history. Import results
and previews are returned as the service-layer models directly.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from api.schemas.common import PaginatedResponse


class ImportLogItem(BaseModel):
    """Summary row of the import history."""

    id: int
    file_name: str
    file_type: str
    status: str = Field(..., description="processing, completed or failed")
    total_records: int
    successful_records: int
    failed_records: int
    user_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 42,
                "file_name": "okr_q1.xlsx",
                "file_type": "xlsx",
                "status": "failed",
                "total_records": 25,
                "successful_records": 24,
                "failed_records": 1,
                "user_id": 7,
                "started_at": "2025-10-15T12:00:00",
                "completed_at": "2025-10-15T12:00:02",
                "created_at": "2025-10-15T12:00:00"
            }
        }


class ImportLogDetail(ImportLogItem):
    """Full import log including serialized row errors."""

    import_type: str = 'hierarchy'
    error_details: List[Dict[str, Any]] = Field(default_factory=list)

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 42,
                "file_name": "okr_q1.xlsx",
                "file_type": "xlsx",
                "status": "failed",
                "total_records": 25,
                "successful_records": 24,
                "failed_records": 1,
                "error_details": [
                    {
                        "row": 7,
                        "field": "parent_title",
                        "message": "Parent initiative not found: Launch Campain",
                        "data": "Launch Campain",
                        "code": "PARENT_NOT_FOUND",
                        "sheet": "Marketing"
                    }
                ],
                "created_at": "2025-10-15T12:00:00"
            }
        }


ImportLogListResponse = PaginatedResponse[ImportLogItem]
