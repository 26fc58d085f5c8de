"""
Celery application for upload housekeeping.

Imports run synchronously inside the request. The worker only deletes
uploaded files: one timed deletion per upload, plus a periodic purge
of anything older than the retention window.
"""

import os
from celery import Celery
from kombu import Exchange, Queue

REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)
UPLOAD_PURGE_INTERVAL_SECONDS = float(os.getenv('UPLOAD_PURGE_INTERVAL_SECONDS', '900'))

MAINTENANCE_QUEUE = 'maintenance'

celery_app = Celery(
    'hierarchy_import',
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=['tasks.cleanup_tasks']
)

celery_app.conf.update(
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone='UTC',
    enable_utc=True,

    # File deletions finish in milliseconds; a stuck one is killed quickly
    task_time_limit=60,
    task_soft_time_limit=30,
    task_ignore_result=True,
    broker_connection_retry_on_startup=True,

    # A lost deletion is retried by the next purge, so redelivery is safe
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=4,

    task_default_queue=MAINTENANCE_QUEUE,
    task_queues=(
        Queue(MAINTENANCE_QUEUE, Exchange(MAINTENANCE_QUEUE), routing_key=f'{MAINTENANCE_QUEUE}.#'),
    ),
    task_routes={
        'tasks.cleanup_tasks.delete_upload': {
            'queue': MAINTENANCE_QUEUE, 'routing_key': f'{MAINTENANCE_QUEUE}.delete'
        },
        'tasks.cleanup_tasks.purge_expired_uploads': {
            'queue': MAINTENANCE_QUEUE, 'routing_key': f'{MAINTENANCE_QUEUE}.purge'
        },
    },
    beat_schedule={
        'purge-expired-uploads': {
            'task': 'tasks.cleanup_tasks.purge_expired_uploads',
            'schedule': UPLOAD_PURGE_INTERVAL_SECONDS,
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
