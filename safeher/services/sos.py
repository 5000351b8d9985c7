"""
SOS orchestrator: rate-limited trigger, location trail, resolve/cancel and
the notification pass, tied to the tracking session store.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from ..core.config import settings
from ..core.errors import NotFound
from ..repositories import db_models, repository
from . import notifier
from .rate_limiter import SosRateLimiter
from .tracking import SESSION_MAX_AGE, SessionStore, InMemorySessionStore

logger = logging.getLogger(__name__)


def build_location_url(latitude, longitude) -> str:
    return settings.maps_url_template.format(lat=latitude, lng=longitude)


class SosService:
    def __init__(
        self,
        sessions: Optional[SessionStore] = None,
        rate_limiter: Optional[SosRateLimiter] = None,
        event_max_age_hours: int = settings.event_max_age_hours,
    ):
        self.sessions = sessions or InMemorySessionStore()
        self.rate_limiter = rate_limiter or SosRateLimiter()
        self.event_max_age = timedelta(hours=event_max_age_hours)

    def trigger(
        self, device_id: str, latitude: float, longitude: float, trigger_type: str = "manual"
    ) -> db_models.SosEvent:
        now = datetime.utcnow()
        self.rate_limiter.check(device_id, now=now)

        event = repository.create_sos_event(
            device_id=device_id,
            latitude=latitude,
            longitude=longitude,
            trigger_type=trigger_type,
            tracking_started_at=now,
        )
        repository.add_location_point(
            event_id=event.event_id, device_id=device_id, latitude=latitude, longitude=longitude
        )
        repository.update_device_location(device_id, latitude, longitude, at=now)

        self.rate_limiter.record_trigger(device_id, now=now)
        self.sessions.start(event.event_id, device_id)
        logger.info("SOS triggered for device %s: event=%s (%s)", device_id, event.event_id, trigger_type)
        return event

    def get_active(self, device_id: str) -> List[db_models.SosEvent]:
        return repository.list_active_sos_events(device_id)

    def _close(self, event_id: str, status: str) -> db_models.SosEvent:
        """Move an active event to `status`; an already closed event is returned as is."""
        event = repository.update_sos_status(event_id, status, only_from="active")
        if not event:
            raise NotFound("SOS event not found")
        if event.status != status:
            logger.info("SOS event %s already %s, not marking %s", event_id, event.status, status)
            return event
        self.sessions.stop(event_id)
        logger.info("SOS event %s %s", event_id, status)
        return event

    def resolve(self, event_id: str) -> db_models.SosEvent:
        return self._close(event_id, "resolved")

    def cancel(self, event_id: str) -> db_models.SosEvent:
        return self._close(event_id, "cancelled")

    def update_location(
        self,
        event_id: str,
        device_id: str,
        latitude: float,
        longitude: float,
        accuracy: Optional[int] = None,
    ) -> Optional[db_models.LocationHistory]:
        """Append a point to an active event's trail; `None` if the event is gone or closed."""
        event = repository.get_sos_event(event_id)
        if not event or event.status != "active":
            return None
        point = repository.add_location_point(
            event_id=event_id, device_id=device_id, latitude=latitude, longitude=longitude, accuracy=accuracy
        )
        repository.update_device_location(device_id, latitude, longitude, at=point.created_at)
        return point

    def get_location_history(self, event_id: str) -> List[db_models.LocationHistory]:
        return repository.list_location_history(event_id)

    async def notify(self, event_id: str) -> List[notifier.NotificationResult]:
        event = await asyncio.to_thread(repository.get_sos_event, event_id)
        if not event:
            raise NotFound("SOS event not found")
        device = await asyncio.to_thread(repository.get_device, event.device_id)
        device_name = device.name if device else event.device_id

        latest = await asyncio.to_thread(repository.get_latest_location, event_id)
        if latest:
            location_url = build_location_url(latest.latitude, latest.longitude)
        else:
            location_url = build_location_url(event.initial_lat, event.initial_lng)
        return await notifier.notify_all_contacts(event, device_name, location_url)

    def expire_stale_events(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        expired = 0
        for event in repository.list_active_events_started_before(now - self.event_max_age):
            updated = repository.update_sos_status(event.event_id, "expired", only_from="active")
            if updated and updated.status == "expired":
                self.sessions.stop(event.event_id)
                expired += 1
        if expired:
            logger.info("Expired %d stale SOS events", expired)
        return expired

    def sweep(self, now: Optional[datetime] = None) -> dict:
        return {
            "expired_events": self.expire_stale_events(now=now),
            "expired_sessions": self.sessions.sweep_expired(SESSION_MAX_AGE, now=now),
        }
