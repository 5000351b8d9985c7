from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .common import Coordinate


class RegisterDeviceRequest(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=64, description="Identifier generated and kept by the browser")
    name: str = Field(..., min_length=1, description="Display name used in alerts")
    phone: str = Field(..., min_length=10, max_length=20)
    email: Optional[EmailStr] = None


class DeviceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=10, max_length=20)
    email: Optional[EmailStr] = None


class DeviceProfile(BaseModel):
    device_id: str
    name: str
    phone: str
    email: Optional[str] = None
    is_active: bool = True
    last_location_lat: Optional[Coordinate] = None
    last_location_lng: Optional[Coordinate] = None
    last_location_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
