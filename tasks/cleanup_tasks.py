"""
Upload cleanup background tasks.

Uploaded files are deleted on a fixed timer after receipt, whether or not
the import that read them has finished. A periodic purge removes anything
older than the retention window that a timed deletion missed.
"""

import os
import logging
from typing import Any, Dict

from kombu.exceptions import OperationalError

from tasks.celery_app import celery_app
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

TEMP_UPLOAD_DIR = os.getenv('TEMP_UPLOAD_DIR', '/tmp/hierarchy_uploads')
UPLOAD_RETENTION_SECONDS = int(os.getenv('UPLOAD_RETENTION_SECONDS', '300'))


@celery_app.task(name='tasks.cleanup_tasks.delete_upload')
def delete_upload(file_path: str) -> Dict[str, Any]:
    """
    Delete one uploaded file.

    Args:
        file_path: Path returned by StorageService.save_upload

    Returns:
        {'file_path': str, 'deleted': bool}
    """
    deleted = StorageService(os.path.dirname(file_path) or TEMP_UPLOAD_DIR).delete_file(file_path)
    return {'file_path': file_path, 'deleted': deleted}


@celery_app.task(name='tasks.cleanup_tasks.purge_expired_uploads')
def purge_expired_uploads(older_than_seconds: int = UPLOAD_RETENTION_SECONDS) -> Dict[str, Any]:
    """Delete every upload older than the retention window."""
    deleted = StorageService(TEMP_UPLOAD_DIR).cleanup_temp_files(older_than_seconds)
    logger.info(f"Purged {deleted} expired uploads from {TEMP_UPLOAD_DIR}")
    return {'deleted': deleted}


def schedule_upload_cleanup(file_path: str, countdown: int = UPLOAD_RETENTION_SECONDS) -> bool:
    """
    Queue deletion of an upload after `countdown` seconds.

    Returns:
        True if the task was queued. When the broker is unreachable the
        periodic purge removes the file instead.
    """
    try:
        delete_upload.apply_async(args=[file_path], countdown=countdown)
    except OperationalError as e:
        logger.error(f"Could not schedule cleanup of {file_path}: {e}")
        return False

    logger.debug(f"Scheduled deletion of {file_path} in {countdown}s")
    return True
