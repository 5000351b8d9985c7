import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api import contacts, devices, maintenance, offline, sos, tracking
from .core.config import settings
from .core.errors import Unavailable
from .repositories import repository
from .services.sos import SosService
from .services.tracking import build_session_store

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
log = logging.getLogger(__name__)

if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8")

app = FastAPI(title=settings.app_name, version=settings.app_version)
SOS_SERVICE: Optional[SosService] = None


@app.on_event("startup")
def _startup() -> None:
    global SOS_SERVICE
    try:
        repository.init_db()
        SOS_SERVICE = SosService(sessions=build_session_store())
        app.state.sos_service = SOS_SERVICE
    except Exception:  # pragma: no cover
        log.exception("Startup error")
        raise


@app.exception_handler(Unavailable)
async def _unavailable_handler(request: Request, exc: Unavailable) -> JSONResponse:
    log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


app.include_router(devices.router)
app.include_router(contacts.router)
app.include_router(sos.router)
app.include_router(tracking.router)
app.include_router(offline.router)
app.include_router(maintenance.router)
