from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Coordinate, Latitude, Longitude


class SosStatus(str, Enum):
    active = "active"
    resolved = "resolved"
    cancelled = "cancelled"
    expired = "expired"


class TriggerType(str, Enum):
    manual = "manual"
    voice = "voice"
    offline = "offline"


class TriggerSosRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    latitude: Latitude
    longitude: Longitude
    trigger_type: TriggerType = Field(default=TriggerType.manual)


class SosEventResponse(BaseModel):
    event_id: str
    device_id: str
    status: SosStatus
    trigger_type: TriggerType
    initial_lat: Coordinate
    initial_lng: Coordinate
    notifications_sent: int
    tracking_started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LocationUpdateRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    latitude: Latitude
    longitude: Longitude
    accuracy: Optional[int] = Field(default=None, ge=0, description="Accuracy radius in metres")


class LocationPoint(BaseModel):
    event_id: str
    device_id: str
    latitude: Coordinate
    longitude: Coordinate
    accuracy: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class NotificationResultResponse(BaseModel):
    """Outcome of one contact in a notification pass."""
    success: bool
    notification_id: str
    type: str
    recipient: str
    error: Optional[str] = None


class NotificationRecord(BaseModel):
    notification_id: str
    event_id: str
    contact_id: int
    type: str
    recipient: str
    status: str
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
