import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ..repositories import repository
from ..schemas import ContactCreate, ContactResponse, ContactUpdate, DeleteResponse

router = APIRouter()
log = logging.getLogger(__name__)


@router.get("/contacts", response_model=List[ContactResponse])
def list_contacts(device_id: str):
    """Emergency contacts of a device, lowest priority value first."""
    return repository.list_contacts(device_id)


@router.post("/contacts", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
def add_contact(payload: ContactCreate):
    contact = repository.create_contact(
        device_id=payload.device_id,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        priority=payload.priority,
    )
    log.info("Contact %s added for device %s", contact.id, payload.device_id)
    return contact


@router.put("/contacts/{contact_id}", response_model=ContactResponse)
def update_contact(contact_id: int, payload: ContactUpdate):
    contact = repository.update_contact(
        contact_id=contact_id,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        priority=payload.priority,
        is_active=payload.is_active,
    )
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.delete("/contacts/{contact_id}", response_model=DeleteResponse)
def delete_contact(contact_id: int):
    return DeleteResponse(success=repository.delete_contact(contact_id))
