from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class SubscribeRequest(BaseModel):
    subscriber_id: str = Field(..., min_length=1, description="Contact or observer following the event")


class TrackingSessionResponse(BaseModel):
    event_id: str
    device_id: str
    subscribers: List[str]
    started_at: datetime


class SweepResponse(BaseModel):
    expired_events: int
    expired_sessions: int
