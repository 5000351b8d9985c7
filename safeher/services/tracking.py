"""
Tracking sessions for active SOS events.

A session records who is following an event's location updates. Sessions are
kept in a `SessionStore`; the in-memory store is process local and is lost on
restart, the Redis store is shared between workers.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

import redis

from ..core.config import settings

logger = logging.getLogger(__name__)

SESSION_MAX_AGE = timedelta(hours=24)


@dataclass
class TrackingSession:
    event_id: str
    device_id: str
    subscribers: Set[str] = field(default_factory=set)
    started_at: datetime = field(default_factory=datetime.utcnow)

    def as_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "device_id": self.device_id,
            "subscribers": sorted(self.subscribers),
            "started_at": self.started_at,
        }


class SessionStore(ABC):
    @abstractmethod
    def start(self, event_id: str, device_id: str) -> TrackingSession: ...

    @abstractmethod
    def stop(self, event_id: str) -> bool: ...

    @abstractmethod
    def get(self, event_id: str) -> Optional[TrackingSession]: ...

    @abstractmethod
    def add_subscriber(self, event_id: str, subscriber_id: str) -> bool: ...

    @abstractmethod
    def remove_subscriber(self, event_id: str, subscriber_id: str) -> bool: ...

    @abstractmethod
    def list_all(self) -> List[TrackingSession]: ...

    def list_subscribers(self, event_id: str) -> List[str]:
        session = self.get(event_id)
        return sorted(session.subscribers) if session else []

    def list_by_device(self, device_id: str) -> List[TrackingSession]:
        return [s for s in self.list_all() if s.device_id == device_id]

    def sweep_expired(self, max_age: timedelta = SESSION_MAX_AGE, now: Optional[datetime] = None) -> int:
        """Stop every session older than `max_age`; returns how many were removed."""
        now = now or datetime.utcnow()
        cleaned = 0
        for session in self.list_all():
            if now - session.started_at > max_age and self.stop(session.event_id):
                cleaned += 1
        if cleaned:
            logger.info("Removed %d expired tracking sessions", cleaned)
        return cleaned


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: Dict[str, TrackingSession] = {}
        self._lock = threading.Lock()

    def start(self, event_id: str, device_id: str) -> TrackingSession:
        session = TrackingSession(event_id=event_id, device_id=device_id)
        with self._lock:
            self._sessions[event_id] = session
            return self._snapshot(session)

    def stop(self, event_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(event_id, None) is not None

    @staticmethod
    def _snapshot(session: TrackingSession) -> TrackingSession:
        return replace(session, subscribers=set(session.subscribers))

    def get(self, event_id: str) -> Optional[TrackingSession]:
        with self._lock:
            session = self._sessions.get(event_id)
            return self._snapshot(session) if session else None

    def add_subscriber(self, event_id: str, subscriber_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(event_id)
            if not session:
                return False
            session.subscribers.add(subscriber_id)
            return True

    def remove_subscriber(self, event_id: str, subscriber_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(event_id)
            if not session:
                return False
            session.subscribers.discard(subscriber_id)
            return True

    def list_all(self) -> List[TrackingSession]:
        with self._lock:
            return [self._snapshot(s) for s in self._sessions.values()]


class RedisSessionStore(SessionStore):
    """Sessions as Redis hashes plus one set of subscribers per event."""

    INDEX_KEY = "tracking:sessions"

    def __init__(self, client: Optional[redis.Redis] = None, url: str = settings.redis_url):
        self._redis = client or redis.from_url(url, decode_responses=True)

    @staticmethod
    def _session_key(event_id: str) -> str:
        return f"tracking:session:{event_id}"

    @staticmethod
    def _subscribers_key(event_id: str) -> str:
        return f"tracking:subscribers:{event_id}"

    def start(self, event_id: str, device_id: str) -> TrackingSession:
        session = TrackingSession(event_id=event_id, device_id=device_id)
        pipe = self._redis.pipeline()
        pipe.delete(self._subscribers_key(event_id))
        pipe.hset(
            self._session_key(event_id),
            mapping={"device_id": device_id, "started_at": session.started_at.isoformat()},
        )
        pipe.sadd(self.INDEX_KEY, event_id)
        pipe.execute()
        return session

    def stop(self, event_id: str) -> bool:
        pipe = self._redis.pipeline()
        pipe.srem(self.INDEX_KEY, event_id)
        pipe.delete(self._session_key(event_id), self._subscribers_key(event_id))
        removed, _ = pipe.execute()
        return bool(removed)

    def get(self, event_id: str) -> Optional[TrackingSession]:
        data = self._redis.hgetall(self._session_key(event_id))
        if not data:
            return None
        return TrackingSession(
            event_id=event_id,
            device_id=data["device_id"],
            subscribers=set(self._redis.smembers(self._subscribers_key(event_id))),
            started_at=datetime.fromisoformat(data["started_at"]),
        )

    def _change_subscribers(self, event_id: str, command: str, subscriber_id: str) -> bool:
        """Apply SADD/SREM only while the session key exists, retried if the session changes meanwhile."""
        session_key = self._session_key(event_id)

        def apply(pipe: redis.client.Pipeline) -> bool:
            if not pipe.exists(session_key):
                return False
            pipe.multi()
            getattr(pipe, command)(self._subscribers_key(event_id), subscriber_id)
            return True

        return self._redis.transaction(apply, session_key, value_from_callable=True)

    def add_subscriber(self, event_id: str, subscriber_id: str) -> bool:
        return self._change_subscribers(event_id, "sadd", subscriber_id)

    def remove_subscriber(self, event_id: str, subscriber_id: str) -> bool:
        return self._change_subscribers(event_id, "srem", subscriber_id)

    def list_all(self) -> List[TrackingSession]:
        sessions = []
        for event_id in sorted(self._redis.smembers(self.INDEX_KEY)):
            session = self.get(event_id)
            if session:
                sessions.append(session)
        return sessions


def build_session_store(backend: str = settings.tracking_backend) -> SessionStore:
    if backend == "redis":
        logger.info("Tracking sessions stored in Redis at %s", settings.redis_url)
        return RedisSessionStore()
    if backend != "memory":
        raise ValueError(f"Unknown tracking backend: {backend}")
    return InMemorySessionStore()
