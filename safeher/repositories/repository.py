"""
Repository helpers to persist devices, contacts, SOS events and their trail.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Optional, Union
from uuid import uuid4

from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from ..core.errors import Unavailable
from . import db, db_models

logger = logging.getLogger(__name__)


SOS_STATUSES = {"active", "resolved", "cancelled", "expired"}
TRIGGER_TYPES = {"manual", "voice", "offline"}
NOTIFICATION_TYPES = {"sms", "email"}
NOTIFICATION_STATUSES = {"pending", "sent", "failed", "delivered"}
OFFLINE_STATUSES = {"pending", "synced", "failed"}

_COORD_QUANT = Decimal("0.00000001")

Number = Union[float, int, str, Decimal]


def init_db() -> None:
    db.init_db()


def _now() -> datetime:
    return datetime.utcnow()


def new_id() -> str:
    return uuid4().hex


def to_coordinate(value: Number) -> Decimal:
    return Decimal(str(value)).quantize(_COORD_QUANT)


@contextmanager
def _session() -> Iterator[Session]:
    session = Session(db.get_engine(), expire_on_commit=False)
    try:
        yield session
    except OperationalError as exc:
        session.rollback()
        logger.error("Storage unavailable: %s", exc)
        raise Unavailable("Storage backend unavailable") from exc
    finally:
        session.close()


# Devices ------------------------------------------------------------------
def create_device(
    device_id: str,
    name: str,
    phone: str,
    email: Optional[str] = None,
) -> db_models.Device:
    device = db_models.Device(
        device_id=device_id,
        name=name,
        phone=phone,
        email=email,
        is_active=True,
        created_at=_now(),
        updated_at=_now(),
    )
    with _session() as session:
        session.add(device)
        session.commit()
    logger.info("Device registered: %s (%s)", device_id, name)
    return device


def get_device(device_id: str) -> Optional[db_models.Device]:
    with _session() as session:
        return session.get(db_models.Device, device_id)


def update_device(
    device_id: str,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Optional[db_models.Device]:
    with _session() as session:
        dev = session.get(db_models.Device, device_id)
        if not dev:
            return None
        if name is not None:
            dev.name = name
        if phone is not None:
            dev.phone = phone
        if email is not None:
            dev.email = email
        if is_active is not None:
            dev.is_active = is_active
        dev.updated_at = _now()
        session.add(dev)
        session.commit()
        return dev


def update_device_location(
    device_id: str, latitude: Number, longitude: Number, at: Optional[datetime] = None
) -> Optional[db_models.Device]:
    with _session() as session:
        dev = session.get(db_models.Device, device_id)
        if not dev:
            return None
        dev.last_location_lat = to_coordinate(latitude)
        dev.last_location_lng = to_coordinate(longitude)
        dev.last_location_at = at or _now()
        dev.updated_at = _now()
        session.add(dev)
        session.commit()
        return dev


# Emergency contacts -------------------------------------------------------
def list_contacts(device_id: str) -> List[db_models.EmergencyContact]:
    with _session() as session:
        stmt = select(db_models.EmergencyContact).where(db_models.EmergencyContact.device_id == device_id)
        stmt = stmt.order_by(db_models.EmergencyContact.priority.asc(), db_models.EmergencyContact.id.asc())
        return list(session.exec(stmt))


def get_contact(contact_id: int) -> Optional[db_models.EmergencyContact]:
    with _session() as session:
        return session.get(db_models.EmergencyContact, contact_id)


def create_contact(
    *,
    device_id: str,
    name: str,
    phone: str,
    email: Optional[str] = None,
    priority: int = 0,
    is_active: bool = True,
) -> db_models.EmergencyContact:
    contact = db_models.EmergencyContact(
        device_id=device_id,
        name=name,
        phone=phone,
        email=email,
        priority=priority,
        is_active=is_active,
        created_at=_now(),
        updated_at=_now(),
    )
    with _session() as session:
        session.add(contact)
        session.commit()
        session.refresh(contact)
    return contact


def update_contact(
    contact_id: int,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    priority: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> Optional[db_models.EmergencyContact]:
    with _session() as session:
        contact = session.get(db_models.EmergencyContact, contact_id)
        if not contact:
            return None
        if name is not None:
            contact.name = name
        if phone is not None:
            contact.phone = phone
        if email is not None:
            contact.email = email
        if priority is not None:
            contact.priority = priority
        if is_active is not None:
            contact.is_active = is_active
        contact.updated_at = _now()
        session.add(contact)
        session.commit()
        return contact


def delete_contact(contact_id: int) -> bool:
    with _session() as session:
        contact = session.get(db_models.EmergencyContact, contact_id)
        if not contact:
            return False
        session.delete(contact)
        session.commit()
        return True


# SOS events ---------------------------------------------------------------
def create_sos_event(
    *,
    device_id: str,
    latitude: Number,
    longitude: Number,
    trigger_type: str = "manual",
    tracking_started_at: Optional[datetime] = None,
) -> db_models.SosEvent:
    if trigger_type not in TRIGGER_TYPES:
        raise ValueError(f"Invalid trigger type: {trigger_type}")
    event = db_models.SosEvent(
        event_id=new_id(),
        device_id=device_id,
        status="active",
        trigger_type=trigger_type,
        initial_lat=to_coordinate(latitude),
        initial_lng=to_coordinate(longitude),
        notifications_sent=0,
        tracking_started_at=tracking_started_at or _now(),
        created_at=_now(),
        updated_at=_now(),
    )
    with _session() as session:
        session.add(event)
        session.commit()
    return event


def get_sos_event(event_id: str) -> Optional[db_models.SosEvent]:
    with _session() as session:
        return session.get(db_models.SosEvent, event_id)


def list_active_sos_events(device_id: str) -> List[db_models.SosEvent]:
    with _session() as session:
        stmt = select(db_models.SosEvent).where(db_models.SosEvent.device_id == device_id)
        stmt = stmt.where(db_models.SosEvent.status == "active")
        stmt = stmt.order_by(db_models.SosEvent.created_at.desc())
        return list(session.exec(stmt))


def list_active_events_started_before(cutoff: datetime) -> List[db_models.SosEvent]:
    with _session() as session:
        stmt = select(db_models.SosEvent).where(db_models.SosEvent.status == "active")
        stmt = stmt.where(db_models.SosEvent.tracking_started_at < cutoff)
        return list(session.exec(stmt))


def update_sos_status(
    event_id: str, status: str, only_from: Optional[str] = None
) -> Optional[db_models.SosEvent]:
    """
    Set the status of an event. With `only_from`, an event whose current
    status differs is returned unchanged.
    """
    if status not in SOS_STATUSES:
        raise ValueError(f"Invalid SOS status: {status}")
    with _session() as session:
        event = session.get(db_models.SosEvent, event_id)
        if not event:
            return None
        if only_from is not None and event.status != only_from:
            return event
        event.status = status
        if status in {"resolved", "cancelled", "expired"}:
            event.resolved_at = _now()
        event.updated_at = _now()
        session.add(event)
        session.commit()
        return event


def set_notifications_sent(event_id: str, count: int) -> Optional[db_models.SosEvent]:
    with _session() as session:
        event = session.get(db_models.SosEvent, event_id)
        if not event:
            return None
        event.notifications_sent = count
        event.updated_at = _now()
        session.add(event)
        session.commit()
        return event


# Location history ---------------------------------------------------------
def add_location_point(
    *,
    event_id: str,
    device_id: str,
    latitude: Number,
    longitude: Number,
    accuracy: Optional[int] = None,
) -> db_models.LocationHistory:
    point = db_models.LocationHistory(
        event_id=event_id,
        device_id=device_id,
        latitude=to_coordinate(latitude),
        longitude=to_coordinate(longitude),
        accuracy=accuracy,
        created_at=_now(),
    )
    with _session() as session:
        session.add(point)
        session.commit()
        session.refresh(point)
    return point


def list_location_history(event_id: str) -> List[db_models.LocationHistory]:
    with _session() as session:
        stmt = select(db_models.LocationHistory).where(db_models.LocationHistory.event_id == event_id)
        stmt = stmt.order_by(db_models.LocationHistory.created_at.desc(), db_models.LocationHistory.id.desc())
        return list(session.exec(stmt))


def get_latest_location(event_id: str) -> Optional[db_models.LocationHistory]:
    with _session() as session:
        stmt = select(db_models.LocationHistory).where(db_models.LocationHistory.event_id == event_id)
        stmt = stmt.order_by(db_models.LocationHistory.created_at.desc(), db_models.LocationHistory.id.desc())
        return session.exec(stmt.limit(1)).first()


# Notifications ------------------------------------------------------------
def create_notification(
    *,
    notification_id: str,
    event_id: str,
    contact_id: int,
    type: str,
    recipient: str,
    status: str = "pending",
) -> db_models.Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Invalid notification type: {type}")
    if status not in NOTIFICATION_STATUSES:
        raise ValueError(f"Invalid notification status: {status}")
    notification = db_models.Notification(
        notification_id=notification_id,
        event_id=event_id,
        contact_id=contact_id,
        type=type,
        recipient=recipient,
        status=status,
        created_at=_now(),
        updated_at=_now(),
    )
    with _session() as session:
        session.add(notification)
        session.commit()
    return notification


def update_notification(
    notification_id: str,
    status: str,
    external_id: Optional[str] = None,
    error_message: Optional[str] = None,
    sent_at: Optional[datetime] = None,
) -> Optional[db_models.Notification]:
    if status not in NOTIFICATION_STATUSES:
        raise ValueError(f"Invalid notification status: {status}")
    with _session() as session:
        notification = session.get(db_models.Notification, notification_id)
        if not notification:
            return None
        notification.status = status
        if external_id is not None:
            notification.external_id = external_id
        if error_message is not None:
            notification.error_message = error_message
        if sent_at is not None:
            notification.sent_at = sent_at
        notification.updated_at = _now()
        session.add(notification)
        session.commit()
        return notification


def list_event_notifications(event_id: str) -> List[db_models.Notification]:
    with _session() as session:
        stmt = select(db_models.Notification).where(db_models.Notification.event_id == event_id)
        stmt = stmt.order_by(db_models.Notification.created_at.desc())
        return list(session.exec(stmt))


# Offline SOS queue --------------------------------------------------------
def create_offline_request(
    *, device_id: str, latitude: Number, longitude: Number, queue_id: Optional[str] = None
) -> db_models.OfflineSosQueue:
    item = db_models.OfflineSosQueue(
        queue_id=queue_id or new_id(),
        device_id=device_id,
        latitude=to_coordinate(latitude),
        longitude=to_coordinate(longitude),
        status="pending",
        retry_count=0,
        created_at=_now(),
    )
    with _session() as session:
        session.add(item)
        session.commit()
    return item


def get_offline_request(queue_id: str) -> Optional[db_models.OfflineSosQueue]:
    with _session() as session:
        return session.get(db_models.OfflineSosQueue, queue_id)


def list_pending_offline_requests(device_id: str) -> List[db_models.OfflineSosQueue]:
    with _session() as session:
        stmt = select(db_models.OfflineSosQueue).where(db_models.OfflineSosQueue.device_id == device_id)
        stmt = stmt.where(db_models.OfflineSosQueue.status == "pending")
        stmt = stmt.order_by(db_models.OfflineSosQueue.created_at.asc())
        return list(session.exec(stmt))


def mark_offline_synced(queue_id: str, event_id: str) -> Optional[db_models.OfflineSosQueue]:
    with _session() as session:
        item = session.get(db_models.OfflineSosQueue, queue_id)
        if not item:
            return None
        item.status = "synced"
        item.event_id = event_id
        item.synced_at = _now()
        session.add(item)
        session.commit()
        return item


def record_offline_failure(queue_id: str, max_retries: int) -> Optional[db_models.OfflineSosQueue]:
    with _session() as session:
        item = session.get(db_models.OfflineSosQueue, queue_id)
        if not item:
            return None
        item.retry_count += 1
        if item.retry_count >= max_retries:
            item.status = "failed"
        session.add(item)
        session.commit()
        return item


# Rate limiting ------------------------------------------------------------
def get_rate_limit(device_id: str) -> Optional[db_models.SosRateLimit]:
    with _session() as session:
        return session.get(db_models.SosRateLimit, device_id)


def save_rate_limit(
    device_id: str,
    *,
    sos_count: int,
    window_start: datetime,
    is_blocked: bool = False,
    blocked_until: Optional[datetime] = None,
) -> db_models.SosRateLimit:
    with _session() as session:
        record = session.get(db_models.SosRateLimit, device_id)
        if record is None:
            record = db_models.SosRateLimit(device_id=device_id, created_at=_now())
        record.sos_count = sos_count
        record.window_start = window_start
        record.is_blocked = is_blocked
        record.blocked_until = blocked_until
        record.updated_at = _now()
        session.add(record)
        session.commit()
        return record
