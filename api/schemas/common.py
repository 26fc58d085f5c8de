"""
Shared API schemas: error bodies, history paging and the health report.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from services.import_logger import DEFAULT_HISTORY_LIMIT

ItemT = TypeVar('ItemT')


class ErrorResponse(BaseModel):
    """Body returned for every non-2xx response."""

    error: str = Field(..., description="Human readable error")
    code: Optional[str] = Field(None, description="Machine readable error code, e.g. FILE_UNREADABLE")
    detail: Optional[Dict[str, Any]] = Field(None, description="Extra context for the error")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    path: Optional[str] = Field(None, description="Request path")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Role 'employee' is not allowed to import data",
                "code": "FORBIDDEN",
                "detail": None,
                "timestamp": "2025-10-15T12:00:00Z",
                "path": "/api/import/upload"
            }
        }


class PaginationParams(BaseModel):
    """Page selection for import history."""

    page: int = Field(1, ge=1, description="Page number, starting at 1")
    page_size: int = Field(DEFAULT_HISTORY_LIMIT, ge=1, le=100, description="Logs per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[ItemT]):
    """One page of a tenant-scoped listing."""

    total: int = Field(..., description="Items across all pages")
    page: int
    page_size: int
    total_pages: int
    items: List[ItemT]

    @classmethod
    def create(cls, items: List[ItemT], total: int, params: PaginationParams):
        """Build a page; total_pages is 0 when there is nothing to list."""
        return cls(
            total=total,
            page=params.page,
            page_size=params.page_size,
            total_pages=-(-total // params.page_size),
            items=items
        )


class HealthCheckResponse(BaseModel):
    """
    Component status for the import service.

    The broker and workers only carry upload cleanup, so losing them
    degrades the service instead of taking it down.
    """

    status: str = Field(..., description="healthy, degraded or unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
    database: str
    broker: str = Field(..., description="Redis broker used for upload cleanup")
    workers: str = Field(..., description="Cleanup workers consuming the maintenance queue")
    upload_dir: str = Field(..., description="Whether the temp upload directory is writable")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-10-15T12:00:00Z",
                "version": "1.0.0",
                "database": "connected",
                "broker": "connected",
                "workers": "active (1 workers)",
                "upload_dir": "writable"
            }
        }
