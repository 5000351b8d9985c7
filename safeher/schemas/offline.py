from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Coordinate, Latitude, Longitude


class QueueSosRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    latitude: Latitude
    longitude: Longitude


class MarkSyncedRequest(BaseModel):
    event_id: str = Field(..., min_length=1)


class OfflineQueueItem(BaseModel):
    queue_id: str
    device_id: str
    latitude: Coordinate
    longitude: Coordinate
    status: str
    retry_count: int
    event_id: Optional[str] = None
    created_at: datetime
    synced_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
