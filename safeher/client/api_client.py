"""
Thin HTTP client for the SafeHer API, used by the offline replay and the
smoke scripts.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

import requests

from .local_cache import LocalCache
from .offline_sync import queue_offline_sos, sync_pending_requests

logger = logging.getLogger(__name__)


class SafeHerClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 20, session: Optional[Any] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self.http.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def register_device(self, device_id: str, name: str, phone: str, email: Optional[str] = None) -> Dict[str, Any]:
        payload = {"device_id": device_id, "name": name, "phone": phone, "email": email}
        return self._request("POST", "/devices/register", json=payload)

    def get_device(self, device_id: str) -> Optional[Dict[str, Any]]:
        return self._request("GET", f"/devices/{device_id}")

    def list_contacts(self, device_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/contacts", params={"device_id": device_id})

    def add_contact(
        self, device_id: str, name: str, phone: str, email: Optional[str] = None, priority: int = 0
    ) -> Dict[str, Any]:
        payload = {"device_id": device_id, "name": name, "phone": phone, "email": email, "priority": priority}
        return self._request("POST", "/contacts", json=payload)

    def trigger_sos(
        self, device_id: str, latitude: float, longitude: float, trigger_type: str = "manual"
    ) -> Dict[str, Any]:
        payload = {"device_id": device_id, "latitude": latitude, "longitude": longitude, "trigger_type": trigger_type}
        return self._request("POST", "/sos/trigger", json=payload)

    def notify(self, event_id: str) -> List[Dict[str, Any]]:
        return self._request("POST", f"/sos/{event_id}/notify")

    def resolve(self, event_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/sos/{event_id}/resolve")

    def update_location(
        self, event_id: str, device_id: str, latitude: float, longitude: float, accuracy: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        payload = {"device_id": device_id, "latitude": latitude, "longitude": longitude, "accuracy": accuracy}
        return self._request("POST", f"/sos/{event_id}/locations", json=payload)

    def queue_sos(self, device_id: str, latitude: float, longitude: float) -> Dict[str, Any]:
        payload = {"device_id": device_id, "latitude": latitude, "longitude": longitude}
        return self._request("POST", "/offline/queue", json=payload)

    def mark_synced(self, queue_id: str, event_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/offline/{queue_id}/synced", json={"event_id": event_id})

    def mark_failed(self, queue_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/offline/{queue_id}/failed")


def queue_while_offline(client: SafeHerClient, cache: LocalCache, latitude: float, longitude: float) -> Dict[str, Any]:
    """Record an SOS locally, mirroring it on the server when it is reachable."""
    device_id = cache.get_or_create_device_id()
    try:
        item = client.queue_sos(device_id, latitude, longitude)
        queue_id = item["queue_id"]
    except requests.RequestException as exc:
        logger.warning("Server unreachable, keeping SOS only in the local queue: %s", exc)
        queue_id = f"local_{uuid4().hex}"
    return queue_offline_sos(cache, latitude, longitude, queue_id=queue_id)


def replay_offline_queue(client: SafeHerClient, cache: LocalCache) -> Dict[str, int]:
    """Triggers one SOS per pending queue entry and reconciles the server-side queue."""
    device_id = cache.get_or_create_device_id()

    def _sync(request: Dict[str, Any]) -> Dict[str, Any]:
        try:
            event = client.trigger_sos(device_id, request["latitude"], request["longitude"], trigger_type="offline")
        except requests.RequestException:
            if not request["queue_id"].startswith("local_"):
                try:
                    client.mark_failed(request["queue_id"])
                except requests.RequestException as exc:
                    logger.warning("Could not record failed replay of %s: %s", request["queue_id"], exc)
            raise
        if not request["queue_id"].startswith("local_"):
            client.mark_synced(request["queue_id"], event["event_id"])
        return event

    return sync_pending_requests(cache, _sync)
