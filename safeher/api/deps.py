from fastapi import HTTPException, Request

from ..services.sos import SosService


def get_sos_service(request: Request) -> SosService:
    service = getattr(request.app.state, "sos_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="SOS service not initialized")
    return service
