import logging
import os
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader
from twilio.base.exceptions import TwilioException

from core.config import settings
from tasks.sms_tasks import deliver_sms, send_sms_task

logger = logging.getLogger(__name__)

# Jinja2 environment for plain-text message templates
_templates_env = Environment(
    loader=FileSystemLoader(searchpath=os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")),
    autoescape=False,
)


def twilio_configured() -> bool:
    return bool(settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_PHONE_NUMBER)


def render_template(template_path: str, context: Dict[str, Any]) -> str:
    """Render a text template from templates/ directory with provided context."""
    template = _templates_env.get_template(template_path)
    return template.render(**context).strip()


def send_sms(to_phone: str, body: str) -> None:
    """
    Queue an SMS on Celery, or send it directly when the broker is unreachable.
    Returns immediately when queued so the request is not blocked.
    """
    if settings.TESTING or not twilio_configured():
        logger.info("SMS to %s not sent (Twilio not configured): %s", to_phone, body)
        return

    try:
        send_sms_task.delay(to_phone, body)
        logger.debug("SMS task queued for %s", to_phone)
        return
    except Exception as exc:
        logger.warning("Celery not available, sending SMS directly: %s", exc)

    try:
        deliver_sms(to_phone, body)
    except TwilioException:
        logger.exception("Twilio failed to send SMS to %s", to_phone)
        raise


def send_templated_sms(to_phone: str, template_path: str, context: Dict[str, Any]) -> None:
    """Render a template and send it via the regular send_sms path."""
    body = render_template(template_path, context)
    send_sms(to_phone, body)
