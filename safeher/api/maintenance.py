from fastapi import APIRouter, Depends

from ..schemas import SweepResponse
from ..services.sos import SosService
from .deps import get_sos_service

router = APIRouter()


@router.post("/maintenance/sweep", response_model=SweepResponse)
def sweep(sos: SosService = Depends(get_sos_service)):
    """Expires SOS events and tracking sessions older than 24 hours."""
    return sos.sweep()
