from fastapi import APIRouter, HTTPException, Depends, Query
from dtos.application_dtos import (
    Application,
    ApplicationListResponse,
    ApplicationStatus,
    StatusCounts,
    TransitionResponse,
)
from services.auth_svc import verify_admin, AdminContext
from services.lifecycle_svc import (
    ApplicationLifecycleManager,
    ApplicationNotFound,
    ConfirmationRequired,
    InvalidTransition,
    LifecycleError,
    StoreWriteError,
)
from deps import get_manager

router = APIRouter()


def _raise_http(e: LifecycleError):
    if isinstance(e, ApplicationNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidTransition):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ConfirmationRequired):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StoreWriteError):
        raise HTTPException(status_code=502, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=ApplicationListResponse)
def list_applications(
    tab: ApplicationStatus = Query(ApplicationStatus.PENDING),
    search: str = Query(""),
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    return ApplicationListResponse(
        tab=tab,
        search=search,
        counts=manager.counts_by_status(),
        applications=manager.filter(tab, search),
    )


@router.get("/counts", response_model=StatusCounts)
def get_counts(
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    return manager.counts_by_status()


@router.get("/{app_id}", response_model=Application)
def get_application(
    app_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    app = manager.get(app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return app


@router.post("/{app_id}/approve", response_model=TransitionResponse)
async def approve_application(
    app_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    try:
        updates = await manager.approve(app_id)
    except LifecycleError as e:
        _raise_http(e)
    return TransitionResponse(status="success", id=app_id, updates=updates)


@router.post("/{app_id}/reject", response_model=TransitionResponse)
async def reject_application(
    app_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    try:
        updates = await manager.reject(app_id)
    except LifecycleError as e:
        _raise_http(e)
    return TransitionResponse(status="success", id=app_id, updates=updates)


@router.delete("/{app_id}")
async def delete_application(
    app_id: str,
    confirm: bool = Query(False, description="Must be true; deletion cannot be undone"),
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    try:
        await manager.delete(app_id, confirmed=confirm)
    except LifecycleError as e:
        _raise_http(e)
    return {"status": "success", "message": "Application deleted", "id": app_id}


@router.post("/{app_id}/payment", response_model=TransitionResponse)
async def approve_payment(
    app_id: str,
    manager: ApplicationLifecycleManager = Depends(get_manager),
    admin: AdminContext = Depends(verify_admin),
):
    """Mark the registration fee of an approved application as PAID."""
    try:
        updates = await manager.mark_paid(app_id, admin.uid)
    except LifecycleError as e:
        _raise_http(e)
    return TransitionResponse(status="success", id=app_id, updates=updates)
