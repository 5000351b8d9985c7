"""
SQLModel table definitions for persistence.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Numeric
from sqlmodel import Field, SQLModel


# Fixed-point coordinates: 8 fractional digits for both axes
def _lat_column(nullable: bool = False) -> Column:
    return Column(Numeric(10, 8), nullable=nullable)


def _lng_column(nullable: bool = False) -> Column:
    return Column(Numeric(11, 8), nullable=nullable)


class Device(SQLModel, table=True):
    device_id: str = Field(primary_key=True, max_length=64)
    name: str
    phone: str = Field(max_length=20)
    email: Optional[str] = Field(default=None, max_length=320)
    is_active: bool = True
    last_location_lat: Optional[Decimal] = Field(default=None, sa_column=_lat_column(nullable=True))
    last_location_lng: Optional[Decimal] = Field(default=None, sa_column=_lng_column(nullable=True))
    last_location_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class EmergencyContact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    device_id: str = Field(index=True, max_length=64)
    name: str
    phone: str = Field(max_length=20)
    email: Optional[str] = Field(default=None, max_length=320)
    priority: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class SosEvent(SQLModel, table=True):
    event_id: str = Field(primary_key=True, max_length=64)
    device_id: str = Field(index=True, max_length=64)
    status: str = Field(default="active", index=True)
    trigger_type: str = "manual"
    initial_lat: Decimal = Field(sa_column=_lat_column())
    initial_lng: Decimal = Field(sa_column=_lng_column())
    notifications_sent: int = 0
    tracking_started_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class LocationHistory(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(index=True, max_length=64)
    device_id: str = Field(max_length=64)
    latitude: Decimal = Field(sa_column=_lat_column())
    longitude: Decimal = Field(sa_column=_lng_column())
    accuracy: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Notification(SQLModel, table=True):
    notification_id: str = Field(primary_key=True, max_length=64)
    event_id: str = Field(index=True, max_length=64)
    contact_id: int
    type: str
    recipient: str = Field(max_length=320)
    status: str = Field(default="pending", index=True)
    external_id: Optional[str] = Field(default=None, max_length=255)
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class OfflineSosQueue(SQLModel, table=True):
    queue_id: str = Field(primary_key=True, max_length=64)
    device_id: str = Field(index=True, max_length=64)
    latitude: Decimal = Field(sa_column=_lat_column())
    longitude: Decimal = Field(sa_column=_lng_column())
    status: str = Field(default="pending", index=True)
    retry_count: int = 0
    event_id: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    synced_at: Optional[datetime] = None


class SosRateLimit(SQLModel, table=True):
    device_id: str = Field(primary_key=True, max_length=64)
    sos_count: int = 0
    window_start: datetime = Field(default_factory=datetime.utcnow)
    is_blocked: bool = False
    blocked_until: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
