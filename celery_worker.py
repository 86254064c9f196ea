#!/usr/bin/env python3
"""
Celery worker for the restaurant ordering API.
Consumes the SMS queue (OTP codes sent through Twilio).
"""

from dotenv import load_dotenv

load_dotenv()

if __name__ == "__main__":
    from core.celery import SMS_QUEUE, celery_app
    from core.config import settings
    from core.logging_config import setup_logging

    setup_logging(settings.LOG_LEVEL)
    celery_app.start([
        "worker",
        f"--loglevel={settings.LOG_LEVEL.lower()}",
        f"--queues={SMS_QUEUE}",
        "--concurrency=2",
        "--without-gossip",
        "--without-mingle",
    ])
