from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.lifecycle_svc import ApplicationLifecycleManager
from deps import get_manager

router = APIRouter()


@router.get("/live")
def live():
    return {"status": "ok"}


@router.get("/ready")
def ready(manager: ApplicationLifecycleManager = Depends(get_manager)):
    """Ready once the first applications snapshot has arrived from Firebase."""
    if not manager.loaded:
        return JSONResponse(status_code=503, content={"status": "loading", "applications": None})
    return {"status": "ok", "applications": manager.counts_by_status().total}
