import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..schemas import SubscribeRequest, TrackingSessionResponse
from ..services.sos import SosService
from .deps import get_sos_service

router = APIRouter(prefix="/tracking")
log = logging.getLogger(__name__)


@router.get("", response_model=List[TrackingSessionResponse])
def list_sessions(device_id: Optional[str] = None, sos: SosService = Depends(get_sos_service)):
    sessions = sos.sessions.list_by_device(device_id) if device_id else sos.sessions.list_all()
    return [s.as_dict() for s in sessions]


@router.get("/{event_id}", response_model=TrackingSessionResponse)
def get_session(event_id: str, sos: SosService = Depends(get_sos_service)):
    session = sos.sessions.get(event_id)
    if not session:
        raise HTTPException(status_code=404, detail="Tracking session not found")
    return session.as_dict()


@router.post("/{event_id}/subscribers", response_model=TrackingSessionResponse)
def add_subscriber(event_id: str, payload: SubscribeRequest, sos: SosService = Depends(get_sos_service)):
    if not sos.sessions.add_subscriber(event_id, payload.subscriber_id):
        raise HTTPException(status_code=404, detail="Tracking session not found")
    log.info("Subscriber %s following event %s", payload.subscriber_id, event_id)
    return sos.sessions.get(event_id).as_dict()


@router.delete("/{event_id}/subscribers/{subscriber_id}")
def remove_subscriber(event_id: str, subscriber_id: str, sos: SosService = Depends(get_sos_service)):
    if not sos.sessions.remove_subscriber(event_id, subscriber_id):
        raise HTTPException(status_code=404, detail="Tracking session not found")
    return {"subscribers": sos.sessions.list_subscribers(event_id)}
