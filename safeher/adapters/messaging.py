"""
Outbound SMS (Twilio) and email (SMTP) gateways.
When a provider has no credentials the send is simulated and reported as
successful, so development setups can exercise the full alert flow.
"""

import asyncio
import logging
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional
from uuid import uuid4

import aiosmtplib
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..core.config import settings

logger = logging.getLogger(__name__)

_TWILIO_CLIENT: Optional[Client] = None


@dataclass
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def sms_configured() -> bool:
    return bool(settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number)


def smtp_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_pass)


def _twilio_client() -> Client:
    global _TWILIO_CLIENT
    if _TWILIO_CLIENT is None:
        _TWILIO_CLIENT = Client(settings.twilio_account_sid, settings.twilio_auth_token)
    return _TWILIO_CLIENT


def _simulated(channel: str, recipient: str) -> DeliveryResult:
    logger.warning("%s provider not configured - simulating send to %s", channel, recipient)
    return DeliveryResult(success=True, message_id=f"simulated-{uuid4().hex}")


async def send_sms(phone: str, body: str, timeout: float = settings.notify_timeout_seconds) -> DeliveryResult:
    if not sms_configured():
        return _simulated("SMS", phone)
    try:
        message = await asyncio.wait_for(
            asyncio.to_thread(
                _twilio_client().messages.create,
                body=body,
                from_=settings.twilio_phone_number,
                to=phone,
            ),
            timeout=timeout,
        )
        logger.info("SMS sent to %s (sid=%s)", phone, message.sid)
        return DeliveryResult(success=True, message_id=message.sid)
    except asyncio.TimeoutError:
        logger.error("SMS to %s timed out after %.1fs", phone, timeout)
        return DeliveryResult(success=False, error=f"SMS send timed out after {timeout}s")
    except TwilioException as exc:
        logger.error("Twilio error sending to %s: %s", phone, exc)
        return DeliveryResult(success=False, error=str(exc) or "SMS send failed")


async def send_email(
    to_email: str, subject: str, body: str, timeout: float = settings.notify_timeout_seconds
) -> DeliveryResult:
    if not smtp_configured():
        return _simulated("Email", to_email)

    message = MIMEText(body, "plain")
    message["Subject"] = subject
    message["From"] = settings.smtp_from_email
    message["To"] = to_email
    message_id = f"<{uuid4().hex}@safeher>"
    message["Message-ID"] = message_id

    try:
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            start_tls=True,
            timeout=timeout,
        )
        logger.info("Email sent to %s", to_email)
        return DeliveryResult(success=True, message_id=message_id)
    except aiosmtplib.SMTPException as exc:
        logger.error("SMTP error sending to %s: %s", to_email, exc)
        return DeliveryResult(success=False, error=str(exc) or "Email send failed")
