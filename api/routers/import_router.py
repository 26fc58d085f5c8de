"""
Import router - Handle hierarchy file uploads and import history.

This module provides endpoints for importing and previewing hierarchy
files and for browsing the tenant's import logs.
"""

import json
import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, UploadFile, File, Form, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from api.config import settings
from api.dependencies import get_db, require_import_role, verify_file_extension, verify_file_size
from api.schemas.common import PaginationParams
from api.schemas.import_schema import ImportLogDetail, ImportLogItem, ImportLogListResponse
from backend.models.schema import Profile
from services.import_logger import DEFAULT_HISTORY_LIMIT, ImportLogger
from services.import_schema import ImportContext, ImportPreview, ImportResult, PeriodFilter
from services.import_service import HierarchyImportService
from services.storage_service import StorageService
from tasks.cleanup_tasks import schedule_upload_cleanup

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/import', tags=['import'])


def _parse_department_mapping(raw: Optional[str]) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        mapping = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"department_mapping must be a JSON object: {e}"
        )
    if not isinstance(mapping, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in mapping.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="department_mapping must map department names to department names"
        )
    return mapping


def _parse_period(period_start: Optional[date], period_end: Optional[date]) -> Optional[PeriodFilter]:
    if period_start is None and period_end is None:
        return None
    try:
        return PeriodFilter(period_start=period_start, period_end=period_end)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="period_end must be after period_start"
        )


def _receive_upload(file: UploadFile) -> bytes:
    """Check the upload against the limits, keep a temp copy and schedule its removal."""
    verify_file_extension(file.filename)
    content = file.file.read()
    verify_file_size(len(content))

    storage = StorageService(settings.TEMP_UPLOAD_DIR)
    temp_path = storage.save_upload(content, file.filename)
    schedule_upload_cleanup(temp_path, settings.UPLOAD_RETENTION_SECONDS)
    return content


@router.post('/upload', response_model=ImportResult)
def upload_hierarchy_file(
    file: UploadFile = File(..., description="Hierarchy file to import (.xlsx or .csv)"),
    department_mapping: Optional[str] = Form(None, description="JSON object mapping source to target departments"),
    period_start: Optional[date] = Form(None, description="Only import rows starting on or after this date"),
    period_end: Optional[date] = Form(None, description="Only import rows ending on or before this date"),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_import_role)
):
    """
    Upload a hierarchy file and import it.

    The import runs synchronously and returns the full result. Rows with
    errors are skipped and reported; every other row is created.

    **Workflow:**
    1. Validate file type and size
    2. Store a temporary copy (removed on a timer)
    3. Parse, validate, resolve parents and owners, create records
    4. Return counts, per-row errors, warnings and the import log id

    **Returns:**
    - 200 with ImportResult (check `success` for zero errors)
    """
    logger.info(f"Upload request from profile {profile.id}: {file.filename}")

    mapping = _parse_department_mapping(department_mapping)
    period = _parse_period(period_start, period_end)
    content = _receive_upload(file)

    context = ImportContext(
        tenant_id=profile.company_id,
        uploader_id=profile.id,
        department_mapping=mapping,
        max_records=settings.MAX_IMPORT_RECORDS
    )
    service = HierarchyImportService(db, context, period=period)
    return service.import_file(content, file.filename, StorageService.file_type_for(file.filename))


@router.post('/preview', response_model=ImportPreview)
def preview_hierarchy_file(
    file: UploadFile = File(..., description="Hierarchy file to preview (.xlsx or .csv)"),
    department_mapping: Optional[str] = Form(None),
    period_start: Optional[date] = Form(None),
    period_end: Optional[date] = Form(None),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_import_role)
):
    """
    Parse and validate a file without writing anything.

    Returns row counts, validation errors and the first valid records.
    """
    mapping = _parse_department_mapping(department_mapping)
    period = _parse_period(period_start, period_end)
    content = _receive_upload(file)

    context = ImportContext(
        tenant_id=profile.company_id,
        uploader_id=profile.id,
        department_mapping=mapping,
        max_records=settings.MAX_IMPORT_RECORDS
    )
    service = HierarchyImportService(db, context, period=period)
    return service.preview_file(content, StorageService.file_type_for(file.filename))


@router.get('/logs', response_model=ImportLogListResponse)
def list_import_logs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=100, description="Logs per page"),
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_import_role)
):
    """
    List the tenant's imports, newest first.
    """
    pagination = PaginationParams(page=page, page_size=page_size)
    import_logger = ImportLogger(db)
    logs = import_logger.history(profile.company_id, limit=pagination.page_size, offset=pagination.offset)
    total = import_logger.count(profile.company_id)

    return ImportLogListResponse.create(
        items=[ImportLogItem.model_validate(log) for log in logs],
        total=total,
        params=pagination
    )


@router.get('/logs/{log_id}', response_model=ImportLogDetail)
def get_import_log(
    log_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(require_import_role)
):
    """
    Get one import log with its row errors.

    Logs of other tenants are reported as not found.
    """
    log = ImportLogger(db).get(log_id, profile.company_id)

    if not log:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import log {log_id} not found"
        )

    return ImportLogDetail.model_validate(log.to_dict())
