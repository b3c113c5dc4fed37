"""
Celery configuration for distributed task queue.

This module configures the Celery application with:
- Redis broker and result backend
- Task routing to the email_rules queue
- Worker configuration
"""
import sys
from pathlib import Path
import logfire
from celery import Celery
from celery.signals import worker_process_init
from config.redis_config import redis_settings
from config.settings import settings

# Add project root to Python path so workers resolve 'pipeline', 'services', ...
project_root = Path(__file__).parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

celery_app = Celery(
    "bookingops",
    broker=redis_settings.broker_url,
    backend=redis_settings.result_backend,
    include=["tasks.rule_tasks"],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    # Allow both JSON and pickle for deserialization (pickle needed for exceptions)
    accept_content=["json", "pickle"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task results
    result_expires=3600,
    result_extended=True,

    # Task routing
    task_routes={
        "tasks.rule_tasks.process_submission_rules_task": {
            "queue": "email_rules"
        },
    },

    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,

    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Retries are not done at the Celery level: a re-run would resend every
    # email already sent by the first attempt
    task_autoretry_for=(),
    task_retry_kwargs={
        "max_retries": 0,
    },

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
)


@worker_process_init.connect
def init_worker_process(**kwargs) -> None:
    """
    Initialize each worker process (runs once per process, not per task).
    """
    # Re-establish sys.path in forked child process
    project_root = Path(__file__).parent.absolute()
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    if settings.logfire_token:
        logfire.configure(
            service_name="bookingops-celery-worker",
            token=settings.logfire_token,
            environment=settings.environment,
            send_to_logfire="if-token-present",
            console=False,
        )
    else:
        logfire.configure(
            send_to_logfire=False,
            console=False,
        )

    logfire.info(
        "Celery worker initialized",
        project_root=str(project_root),
        logfire_enabled=bool(settings.logfire_token),
    )


@celery_app.task(name="health_check")
def health_check() -> dict:
    """
    Health check task for monitoring worker status.
    """
    return {
        "status": "healthy",
        "service": "bookingops-celery-worker"
    }
