"""
Alert fan-out to emergency contacts: SMS first, email as fallback.

Every channel attempt is recorded as a Notification row that starts as
`pending` and ends as `sent` or `failed`.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional

from ..adapters import messaging
from ..repositories import db_models, repository

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    success: bool
    notification_id: str
    type: str
    recipient: str
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def sms_text(device_name: str, location_url: str) -> str:
    return f"EMERGENCY ALERT from {device_name}: I need help! View my location: {location_url}"


def email_subject(device_name: str) -> str:
    return f"EMERGENCY ALERT: {device_name} needs help"


def email_body(device_name: str, location_url: str) -> str:
    return (
        "EMERGENCY ALERT\n\n"
        f"{device_name} has triggered an emergency alert and needs help.\n\n"
        f"Location: {location_url}\n\n"
        "Please respond immediately if you are able to help."
    )


async def _deliver(
    event: db_models.SosEvent,
    contact: db_models.EmergencyContact,
    channel: str,
    recipient: str,
    send,
) -> NotificationResult:
    notification_id = repository.new_id()
    try:
        await asyncio.to_thread(
            repository.create_notification,
            notification_id=notification_id,
            event_id=event.event_id,
            contact_id=contact.id,
            type=channel,
            recipient=recipient,
            status="pending",
        )
        response = await send()
        await asyncio.to_thread(
            repository.update_notification,
            notification_id,
            status="sent" if response.success else "failed",
            external_id=response.message_id,
            error_message=response.error,
            sent_at=datetime.utcnow(),
        )
    except Exception as exc:
        await asyncio.to_thread(
            repository.update_notification,
            notification_id,
            status="failed",
            error_message=str(exc) or "Unknown error",
        )
        raise

    return NotificationResult(
        success=response.success,
        notification_id=notification_id,
        type=channel,
        recipient=recipient,
        error=response.error,
    )


async def send_sms_alert(
    event: db_models.SosEvent, contact: db_models.EmergencyContact, device_name: str, location_url: str
) -> NotificationResult:
    body = sms_text(device_name, location_url)
    return await _deliver(event, contact, "sms", contact.phone, lambda: messaging.send_sms(contact.phone, body))


async def send_email_alert(
    event: db_models.SosEvent, contact: db_models.EmergencyContact, device_name: str, location_url: str
) -> NotificationResult:
    recipient = contact.email or ""
    subject = email_subject(device_name)
    body = email_body(device_name, location_url)
    return await _deliver(
        event, contact, "email", recipient, lambda: messaging.send_email(recipient, subject, body)
    )


async def send_emergency_alert(
    event: db_models.SosEvent, contact: db_models.EmergencyContact, device_name: str, location_url: str
) -> NotificationResult:
    """
    Alert one contact. A raised SMS error falls through to email; an email
    error propagates to the caller. A contact with neither channel gets a
    failure result and no Notification row.
    """
    if contact.phone:
        try:
            return await send_sms_alert(event, contact, device_name, location_url)
        except Exception as exc:
            logger.warning("SMS failed for %s, trying email: %s", contact.phone, exc)

    if contact.email:
        return await send_email_alert(event, contact, device_name, location_url)

    return NotificationResult(
        success=False,
        notification_id=repository.new_id(),
        type="sms",
        recipient=contact.phone or contact.email or "unknown",
        error="No valid contact method available",
    )


async def notify_all_contacts(
    event: db_models.SosEvent, device_name: str, location_url: str
) -> List[NotificationResult]:
    contacts = await asyncio.to_thread(repository.list_contacts, event.device_id)
    results: List[NotificationResult] = []

    for contact in contacts:
        if not contact.is_active:
            continue
        try:
            result = await send_emergency_alert(event, contact, device_name, location_url)
        except Exception as exc:
            logger.error("Failed to notify contact %s for event %s: %s", contact.id, event.event_id, exc)
            result = NotificationResult(
                success=False,
                notification_id=repository.new_id(),
                type="sms",
                recipient=contact.phone or contact.email or "unknown",
                error=str(exc) or "Unknown error",
            )
        results.append(result)

    success_count = sum(1 for r in results if r.success)
    await asyncio.to_thread(repository.set_notifications_sent, event.event_id, success_count)
    event.notifications_sent = success_count
    logger.info(
        "Event %s: notified %d/%d active contacts", event.event_id, success_count, len(results)
    )
    return results
