from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
from services.auth_svc import (
    AuthError,
    AdminContext,
    IdentityToolkitClient,
    create_admin,
    optional_admin,
    sign_in,
    sign_out,
    verify_admin,
)
from dtos.auth_dtos import LoginRequest, LoginResponse, AdminSignupRequest, SignupResponse
from deps import get_identity, get_store

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    req: LoginRequest,
    identity: IdentityToolkitClient = Depends(get_identity),
    store=Depends(get_store),
):
    try:
        session = await sign_in(identity, store, req.email, req.password)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=e.message)

    context: AdminContext = session["context"]
    return LoginResponse(
        uid=context.uid,
        email=context.email,
        id_token=context.id_token,
        refresh_token=session["refresh_token"],
        expires_in=session["expires_in"],
        is_admin=context.is_admin,
        admin=context.admin,
    )


@router.post("/logout")
def logout(admin: AdminContext = Depends(verify_admin)):
    try:
        sign_out(admin)
    except AuthError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"status": "success", "message": "Signed out"}


@router.post("/signup", response_model=SignupResponse, summary="Create an administrator account")
async def signup(
    req: AdminSignupRequest,
    identity: IdentityToolkitClient = Depends(get_identity),
    store=Depends(get_store),
    current: Optional[AdminContext] = Depends(optional_admin),
):
    try:
        record = await create_admin(identity, store, req, created_by=current.uid if current else None)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return SignupResponse(status="success", message="Admin account created successfully!", admin=record)


@router.get("/me")
def me(admin: AdminContext = Depends(verify_admin)):
    return {"uid": admin.uid, "email": admin.email, "is_admin": admin.is_admin, "admin": admin.admin}
