import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ..core.config import settings
from ..repositories import repository
from ..schemas import MarkSyncedRequest, OfflineQueueItem, QueueSosRequest

router = APIRouter(prefix="/offline")
log = logging.getLogger(__name__)


@router.post("/queue", response_model=OfflineQueueItem, status_code=status.HTTP_201_CREATED)
def queue_sos(payload: QueueSosRequest):
    item = repository.create_offline_request(
        device_id=payload.device_id, latitude=payload.latitude, longitude=payload.longitude
    )
    log.info("Offline SOS queued for device %s: %s", payload.device_id, item.queue_id)
    return item


@router.get("/pending", response_model=List[OfflineQueueItem])
def get_pending(device_id: str):
    """Pending offline SOS requests, oldest first."""
    return repository.list_pending_offline_requests(device_id)


@router.post("/{queue_id}/synced", response_model=OfflineQueueItem)
def mark_synced(queue_id: str, payload: MarkSyncedRequest):
    item = repository.mark_offline_synced(queue_id, payload.event_id)
    if not item:
        raise HTTPException(status_code=404, detail="Queue item not found")
    return item


@router.post("/{queue_id}/failed", response_model=OfflineQueueItem)
def mark_failed(queue_id: str):
    """Counts a failed replay; the item stops being pending after OFFLINE_MAX_RETRIES."""
    item = repository.record_offline_failure(queue_id, settings.offline_max_retries)
    if not item:
        raise HTTPException(status_code=404, detail="Queue item not found")
    if item.status == "failed":
        log.warning("Offline SOS %s gave up after %d retries", queue_id, item.retry_count)
    return item
