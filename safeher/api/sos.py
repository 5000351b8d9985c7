import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..core.errors import NotFound, RateLimited
from ..repositories import repository
from ..schemas import (
    LocationPoint,
    LocationUpdateRequest,
    NotificationRecord,
    NotificationResultResponse,
    SosEventResponse,
    TriggerSosRequest,
)
from ..services.sos import SosService
from .deps import get_sos_service

router = APIRouter(prefix="/sos")
log = logging.getLogger(__name__)


@router.post("/trigger", response_model=SosEventResponse, status_code=status.HTTP_201_CREATED)
def trigger_sos(payload: TriggerSosRequest, sos: SosService = Depends(get_sos_service)):
    """
    Activates an SOS for the device.

    Creates the event, stores the first point of the location trail and starts
    a tracking session. Contacts are not alerted here: the client follows up
    with POST /sos/{event_id}/notify.

    Request:
    {
        "device_id": "device_V1StGXR8",
        "latitude": 12.9716,
        "longitude": 77.5946,
        "trigger_type": "manual"
    }

    429 if the device is currently blocked by the rate limiter.
    """
    try:
        return sos.trigger(
            payload.device_id, payload.latitude, payload.longitude, trigger_type=payload.trigger_type.value
        )
    except RateLimited as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc))


@router.get("/active", response_model=List[SosEventResponse])
def get_active(device_id: str, sos: SosService = Depends(get_sos_service)):
    return sos.get_active(device_id)


@router.post("/{event_id}/resolve", response_model=SosEventResponse)
def resolve_sos(event_id: str, sos: SosService = Depends(get_sos_service)):
    try:
        return sos.resolve(event_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.post("/{event_id}/cancel", response_model=SosEventResponse)
def cancel_sos(event_id: str, sos: SosService = Depends(get_sos_service)):
    try:
        return sos.cancel(event_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/{event_id}/locations", response_model=List[LocationPoint])
def get_location_history(event_id: str, sos: SosService = Depends(get_sos_service)):
    return sos.get_location_history(event_id)


@router.post("/{event_id}/locations", response_model=Optional[LocationPoint])
def update_location(event_id: str, payload: LocationUpdateRequest, sos: SosService = Depends(get_sos_service)):
    """Returns the stored point, or null when the event is missing or no longer active."""
    return sos.update_location(
        event_id, payload.device_id, payload.latitude, payload.longitude, accuracy=payload.accuracy
    )


@router.post("/{event_id}/notify", response_model=List[NotificationResultResponse])
async def notify_contacts(event_id: str, sos: SosService = Depends(get_sos_service)):
    try:
        results = await sos.notify(event_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return [r.as_dict() for r in results]


@router.get("/{event_id}/notifications", response_model=List[NotificationRecord])
def list_notifications(event_id: str):
    return repository.list_event_notifications(event_id)
