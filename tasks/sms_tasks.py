import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from core.celery import celery_app
from core.config import settings

logger = logging.getLogger(__name__)


def deliver_sms(to_phone: str, body: str) -> str:
    """Send one message through Twilio and return its SID."""
    client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    message = client.messages.create(body=body, from_=settings.TWILIO_PHONE_NUMBER, to=to_phone)
    logger.info("SMS sent to %s (sid=%s)", to_phone, message.sid)
    return message.sid


@celery_app.task(bind=True, max_retries=3)
def send_sms_task(self, to_phone: str, body: str):
    """
    Send an SMS asynchronously with Celery.
    Retries up to 3 times on failure.
    """
    if settings.TESTING:
        logger.info("SMS to %s skipped in testing mode", to_phone)
        return {"status": "skipped", "to": to_phone}

    try:
        sid = deliver_sms(to_phone, body)
        return {"status": "sent", "to": to_phone, "sid": sid}
    except TwilioException as exc:
        logger.warning("SMS to %s failed (retry %s): %s", to_phone, self.request.retries, exc)
        # Retry with exponential backoff
        countdown = min(2 ** self.request.retries, 60)  # Max 60 seconds
        raise self.retry(exc=exc, countdown=countdown)
