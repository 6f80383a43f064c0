"""
Celery application configuration.
Uses Redis as broker and result backend.
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "analytics_dashboard",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Retry defaults
    task_default_retry_delay=60,  # 1 minute
    task_max_retries=3,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,

    # Task routing
    task_routes={
        "app.workers.alert_tasks.*": {"queue": "alerts"},
    },

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result expiration
    result_expires=3600,  # 1 hour

    # Task discovery
    imports=[
        "app.workers.alert_tasks",
    ],
)

celery_app.conf.beat_schedule = {
    "metric-alert-check": {
        "task": "app.workers.alert_tasks.check_metric_alerts",
        "schedule": settings.ALERT_CHECK_INTERVAL_SECONDS,
    },
}
