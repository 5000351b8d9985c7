from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactCreate(BaseModel):
    device_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=10, max_length=20)
    email: Optional[EmailStr] = None
    priority: int = Field(default=0, ge=0, description="Lower values are notified first")


class ContactUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=10, max_length=20)
    email: Optional[EmailStr] = None
    priority: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class ContactResponse(BaseModel):
    id: int
    device_id: str
    name: str
    phone: str
    email: Optional[str] = None
    priority: int
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class DeleteResponse(BaseModel):
    success: bool
