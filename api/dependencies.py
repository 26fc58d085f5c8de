"""
Dependency injection utilities for FastAPI.

This module provides reusable dependencies for database sessions,
caller identity, role checks and upload limits.
"""

import logging
from typing import Generator, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from fastapi import Depends, HTTPException, Header, status

from api.config import settings
from backend.models.schema import Profile
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=settings.DB_POOL_PRE_PING,
    echo=settings.DEBUG
)

# The import service commits per record, so sessions must not autoflush
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request, shared by identity lookup and the import."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_profile(
    user_id: Optional[str] = Header(None, alias=settings.USER_ID_HEADER),
    db: Session = Depends(get_db)
) -> Profile:
    """
    Resolve the caller's profile from the user id header.

    The profile carries the role, department and tenant used by the import.

    Raises:
        HTTPException: 401 if the header is missing, malformed or unknown
    """
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{settings.USER_ID_HEADER} header required"
        )

    try:
        profile_id = int(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid {settings.USER_ID_HEADER} header"
        )

    profile = db.get(Profile, profile_id)
    if profile is None:
        logger.warning(f"Unknown user id {profile_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User profile not found"
        )

    return profile


def require_import_role(profile: Profile = Depends(get_current_profile)) -> Profile:
    """
    Only roles listed in IMPORT_ROLES may run imports.

    Raises:
        HTTPException: 403 for any other role
    """
    if profile.role not in settings.IMPORT_ROLES:
        logger.warning(f"Profile {profile.id} with role '{profile.role}' attempted an import")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{profile.role}' is not allowed to import data"
        )
    return profile


def verify_file_size(file_size: int) -> bool:
    """
    Verify uploaded file size is within limit.

    Raises:
        HTTPException: If file is too large
    """
    if not StorageService.validate_file_size(file_size, settings.MAX_FILE_SIZE_MB):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({file_size / 1024 / 1024:.1f} MB) exceeds maximum allowed "
                   f"({settings.MAX_FILE_SIZE_MB} MB)"
        )

    return True


def verify_file_extension(filename: str) -> bool:
    """
    Verify file has allowed extension.

    Raises:
        HTTPException: If extension is not allowed
    """
    if not StorageService.validate_file_extension(filename, settings.ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed: '{filename}'. "
                   f"Allowed extensions: {', '.join(settings.ALLOWED_EXTENSIONS)}"
        )

    return True
