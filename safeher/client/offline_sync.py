"""
Offline SOS queue kept in the local cache and replayed once the network is back.
"""

import logging
import time
from typing import Any, Callable, Dict, List

from .local_cache import OFFLINE_QUEUE_KEY, LocalCache

logger = logging.getLogger(__name__)


def get_offline_queue(cache: LocalCache) -> List[Dict[str, Any]]:
    queue = cache.get(OFFLINE_QUEUE_KEY, [])
    return queue if isinstance(queue, list) else []


def _save_offline_queue(cache: LocalCache, queue: List[Dict[str, Any]]) -> None:
    cache.set(OFFLINE_QUEUE_KEY, queue)


def queue_offline_sos(cache: LocalCache, latitude: float, longitude: float, queue_id: str) -> Dict[str, Any]:
    request = {
        "queue_id": queue_id,
        "latitude": latitude,
        "longitude": longitude,
        "timestamp": int(time.time() * 1000),
        "synced": False,
    }
    queue = get_offline_queue(cache)
    queue.append(request)
    _save_offline_queue(cache, queue)
    return request


def mark_as_synced(cache: LocalCache, queue_id: str, event_id: str) -> None:
    queue = get_offline_queue(cache)
    for request in queue:
        if request.get("queue_id") == queue_id:
            request["synced"] = True
            request["event_id"] = event_id
            _save_offline_queue(cache, queue)
            return


def get_pending_requests(cache: LocalCache) -> List[Dict[str, Any]]:
    return [r for r in get_offline_queue(cache) if not r.get("synced")]


def clear_offline_queue(cache: LocalCache) -> None:
    cache.remove(OFFLINE_QUEUE_KEY)


def sync_pending_requests(
    cache: LocalCache, sync_fn: Callable[[Dict[str, Any]], Dict[str, Any]]
) -> Dict[str, int]:
    """
    Replays every unsynced request through `sync_fn`, which must return a
    mapping with the created `event_id`. Failures stay pending for the next run.
    """
    synced = 0
    failed = 0
    for request in get_pending_requests(cache):
        try:
            result = sync_fn(request)
            mark_as_synced(cache, request["queue_id"], result["event_id"])
            synced += 1
        except Exception as exc:
            logger.error("Failed to sync offline SOS %s: %s", request.get("queue_id"), exc)
            failed += 1
    return {"synced": synced, "failed": failed}
