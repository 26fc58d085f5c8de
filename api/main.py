"""
FastAPI application for the hierarchy import system.

Mounts the import router under API_PREFIX, renders every error as an
ErrorResponse and reports component health.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime

import redis
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import settings
from api.dependencies import SessionLocal, engine
from api.routers import import_router
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.models import Base
from services.errors import HierarchyImportError
from services.storage_service import StorageService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT,
    handlers=[
        logging.FileHandler(settings.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: 'BAD_REQUEST',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    413: 'FILE_TOO_LARGE',
    422: 'INVALID_INPUT',
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, prepare the upload directory and drop uploads left from a previous run."""
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    storage = StorageService(settings.TEMP_UPLOAD_DIR)
    stale = storage.cleanup_temp_files(settings.UPLOAD_RETENTION_SECONDS)
    logger.info(f"Upload directory {settings.TEMP_UPLOAD_DIR} ready ({stale} stale uploads removed)")

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)


def _error_body(request: Request, error: str, code: str, detail=None) -> dict:
    return ErrorResponse(
        error=error,
        code=code,
        detail=detail,
        path=request.url.path
    ).model_dump(mode='json')


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Access, limit and lookup failures raised by dependencies and routes."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, str(exc.detail), HTTP_ERROR_CODES.get(exc.status_code, 'HTTP_ERROR')),
        headers=getattr(exc, 'headers', None)
    )


@app.exception_handler(HierarchyImportError)
async def import_error_handler(request: Request, exc: HierarchyImportError):
    logger.warning(f"Import error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(request, str(exc), getattr(exc, 'code', 'IMPORT_ERROR'))
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            "Internal server error",
            'INTERNAL_ERROR',
            {"message": str(exc)} if settings.DEBUG else None
        )
    )


app.include_router(import_router.router, prefix=settings.API_PREFIX)


@app.get('/', include_in_schema=False)
async def root():
    prefix = settings.API_PREFIX
    return {
        'message': f'Welcome to {settings.API_TITLE}',
        'version': settings.API_VERSION,
        'docs': '/docs',
        'endpoints': {
            'upload': f'{prefix}/import/upload',
            'preview': f'{prefix}/import/preview',
            'logs': f'{prefix}/import/logs',
        }
    }


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
def health_check():
    """
    Report database, broker, cleanup worker and upload directory status.

    The database and upload directory are required for imports; the broker
    and workers only affect timed upload cleanup.
    """
    report = {
        'status': 'healthy',
        'timestamp': datetime.utcnow(),
        'version': settings.API_VERSION,
        'database': 'unknown',
        'broker': 'unknown',
        'workers': 'unknown',
        'upload_dir': 'unknown',
    }

    try:
        with SessionLocal() as session:
            session.execute(text('SELECT 1'))
        report['database'] = 'connected'
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        report['database'] = 'disconnected'
        report['status'] = 'unhealthy'

    if os.path.isdir(settings.TEMP_UPLOAD_DIR) and os.access(settings.TEMP_UPLOAD_DIR, os.W_OK):
        report['upload_dir'] = 'writable'
    else:
        report['upload_dir'] = 'not writable'
        report['status'] = 'unhealthy'

    try:
        redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2).ping()
        report['broker'] = 'connected'
    except redis.RedisError as e:
        logger.error(f"Broker health check failed: {e}")
        report['broker'] = 'disconnected'
        if report['status'] == 'healthy':
            report['status'] = 'degraded'

    try:
        from tasks.celery_app import MAINTENANCE_QUEUE, celery_app

        queues = celery_app.control.inspect(timeout=1).active_queues() or {}
        cleanup_workers = [
            worker for worker, worker_queues in queues.items()
            if any(queue['name'] == MAINTENANCE_QUEUE for queue in worker_queues)
        ]
        report['workers'] = f'active ({len(cleanup_workers)} workers)' if cleanup_workers else 'no workers'
        if not cleanup_workers and report['status'] == 'healthy':
            report['status'] = 'degraded'
    except Exception as e:
        logger.error(f"Worker health check failed: {e}")

    return HealthCheckResponse(**report)


@app.get('/api/ping', tags=['health'])
async def ping():
    return {'ping': 'pong'}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with the caller id and timing."""
    started = time.monotonic()
    user_id = request.headers.get(settings.USER_ID_HEADER, '-')
    response = await call_next(request)
    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"{request.method} {request.url.path} user={user_id} - {response.status_code} ({elapsed_ms} ms)")
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
