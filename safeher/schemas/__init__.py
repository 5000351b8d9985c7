from .contact import ContactCreate, ContactUpdate, ContactResponse, DeleteResponse
from .device import DeviceProfile, RegisterDeviceRequest, DeviceUpdate
from .offline import QueueSosRequest, MarkSyncedRequest, OfflineQueueItem
from .sos import (
    LocationPoint,
    LocationUpdateRequest,
    NotificationRecord,
    NotificationResultResponse,
    SosEventResponse,
    SosStatus,
    TriggerSosRequest,
    TriggerType,
)
from .tracking import SubscribeRequest, SweepResponse, TrackingSessionResponse

__all__ = [
    "ContactCreate",
    "ContactUpdate",
    "ContactResponse",
    "DeleteResponse",
    "DeviceProfile",
    "RegisterDeviceRequest",
    "DeviceUpdate",
    "QueueSosRequest",
    "MarkSyncedRequest",
    "OfflineQueueItem",
    "LocationPoint",
    "LocationUpdateRequest",
    "NotificationRecord",
    "NotificationResultResponse",
    "SosEventResponse",
    "SosStatus",
    "TriggerSosRequest",
    "TriggerType",
    "SubscribeRequest",
    "SweepResponse",
    "TrackingSessionResponse",
]
