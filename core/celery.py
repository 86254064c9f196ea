from celery import Celery
from core.config import settings

# Redis doubles as OTP store and task broker
celery_app = Celery(
    "restaurant_ordering",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["tasks.sms_tasks"],
)

SMS_QUEUE = "sms"

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_routes={"tasks.sms_tasks.*": {"queue": SMS_QUEUE}},
    # An OTP that arrives after it expired is useless, keep SMS tasks short
    task_time_limit=60,
    task_soft_time_limit=45,
    result_expires=60 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    task_always_eager=False,
)
