from typing import Optional, Dict, Any, Callable
from datetime import datetime, timezone
import logging

from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from fastapi import HTTPException, Request, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import httpx

from core.config import settings
from dtos.auth_dtos import AdminSignupRequest, AdminRecord
from services.lifecycle_svc import utc_now_iso
from services.rtdb_svc import child_path

logger = logging.getLogger(__name__)

# Security scheme for Bearer token
security_scheme = HTTPBearer()
optional_security_scheme = HTTPBearer(auto_error=False)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

INVALID_CREDENTIALS = "Invalid email or password"

# Firebase Auth error codes -> message shown on the signup form
AUTH_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "This email is already registered. Please use a different email.",
    "INVALID_EMAIL": "Invalid email address format.",
    "WEAK_PASSWORD": "Password is too weak. Please use a stronger password.",
    "OPERATION_NOT_ALLOWED": "Email/password accounts are not enabled. Please contact support.",
}

MIN_PASSWORD_LENGTH = 6


class AuthError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class IdentityToolkitError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ============================================================================
# Session context
# ============================================================================

class AdminContext:
    """
    Identity of the administrator acting in a request.

    Built from a verified ID token (or returned by sign_in), handed to route
    handlers explicitly and discarded by sign_out.
    """
    def __init__(
        self,
        uid: str,
        email: Optional[str],
        id_token: Optional[str] = None,
        admin: Optional[Dict[str, Any]] = None,
    ):
        self.uid = uid
        self.email = email
        self.id_token = id_token
        self.admin = admin
        self.is_admin = admin is not None


# ============================================================================
# Firebase Auth REST client
# ============================================================================

class IdentityToolkitClient:
    """Password sign-in and sign-up go through the Auth REST API; the Admin SDK cannot check passwords."""

    def __init__(
        self,
        api_key: str = settings.FIREBASE_API_KEY,
        base_url: str = IDENTITY_TOOLKIT_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def _post(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/accounts:{method}",
                params={"key": self.api_key},
                json=payload,
            )

        if response.status_code == 200:
            return response.json()

        # e.g. {"error": {"code": 400, "message": "WEAK_PASSWORD : Password should be at least 6 characters"}}
        try:
            message = response.json().get("error", {}).get("message", "")
        except ValueError:
            message = response.text
        code = message.split(" : ")[0].strip() if message else "UNKNOWN"
        raise IdentityToolkitError(code, message or f"HTTP {response.status_code}")

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._post("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        return await self._post("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })


# ============================================================================
# Admin records
# ============================================================================

def load_admin(store, uid: str) -> Optional[Dict[str, Any]]:
    """Admin record from admins/{uid}; None means the user is not an administrator."""
    try:
        return store.get(child_path(settings.ADMINS_PATH, uid))
    except Exception as e:
        logger.error(f"Error checking admin status for {uid}: {e}")
        return None


def validate_signup(form: AdminSignupRequest) -> Optional[str]:
    """Return the first failing rule's message, or None if the form may be submitted."""
    if not form.firstName.strip():
        return "First name is required"
    if not form.lastName.strip():
        return "Last name is required"
    if not form.email.strip():
        return "Email is required"
    if not form.password:
        return "Password is required"
    if len(form.password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if form.password != form.confirmPassword:
        return "Passwords do not match"
    if not form.phone.strip():
        return "Phone number is required"
    return None


def signup_error_message(code: str, message: str) -> str:
    return AUTH_ERROR_MESSAGES.get(code, f"Failed to create admin account: {message}")


async def create_admin(
    identity: IdentityToolkitClient,
    store,
    form: AdminSignupRequest,
    created_by: Optional[str] = None,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> AdminRecord:
    """Create the Firebase Auth account, then seed admins/{uid}."""
    error = validate_signup(form)
    if error:
        raise AuthError(error, code="VALIDATION")

    try:
        account = await identity.sign_up(form.email.strip(), form.password)
    except IdentityToolkitError as e:
        logger.error(f"Error creating admin account: {e.message}")
        raise AuthError(signup_error_message(e.code, e.message), code=e.code) from e
    except httpx.HTTPError as e:
        logger.error(f"Error creating admin account: {e}")
        raise AuthError(signup_error_message("NETWORK", str(e)), code="NETWORK") from e

    uid = account["localId"]
    record = AdminRecord(
        uid=uid,
        firstName=form.firstName.strip(),
        lastName=form.lastName.strip(),
        email=form.email.strip(),
        phone=form.phone.strip(),
        role=form.role,
        department=form.department.strip(),
        createdAt=utc_now_iso(clock()),
        createdBy=created_by or "system",
        status="active",
    )
    try:
        store.set(child_path(settings.ADMINS_PATH, uid), record.model_dump())
    except Exception as e:
        logger.error(f"Error storing admin record for {uid}: {e}")
        raise AuthError(signup_error_message("STORE", str(e)), code="STORE") from e

    logger.info(f"👤 Admin account created: {uid} ({record.role})")
    return record


# ============================================================================
# Sign in / sign out
# ============================================================================

async def sign_in(identity: IdentityToolkitClient, store, email: str, password: str) -> Dict[str, Any]:
    """Password sign-in; returns tokens plus the AdminContext for the new session."""
    try:
        result = await identity.sign_in_with_password(email, password)
    except (IdentityToolkitError, httpx.HTTPError) as e:
        logger.info(f"Sign-in failed for {email}: {e}")
        raise AuthError(INVALID_CREDENTIALS) from e

    uid = result["localId"]
    context = AdminContext(
        uid=uid,
        email=result.get("email", email),
        id_token=result["idToken"],
        admin=load_admin(store, uid),
    )
    return {
        "context": context,
        "refresh_token": result.get("refreshToken"),
        "expires_in": int(result["expiresIn"]) if result.get("expiresIn") else None,
    }


def sign_out(context: AdminContext) -> None:
    """End the session by revoking the user's refresh tokens; later ID-token checks fail."""
    try:
        firebase_auth.revoke_refresh_tokens(context.uid)
    except FirebaseError as e:
        logger.error(f"Error signing out {context.uid}: {e}")
        raise AuthError(f"Failed to sign out: {e}", code=e.code) from e
    logger.info(f"👋 Signed out {context.uid}")


# ============================================================================
# Security Dependencies
# ============================================================================

def _verify_token(token: str) -> Dict[str, Any]:
    """Verify a Firebase ID token, raising 401 if it is invalid, expired or revoked."""
    try:
        return firebase_auth.verify_id_token(token, check_revoked=True)
    except firebase_auth.ExpiredIdTokenError:
        detail = "Authentication token has expired"
    except firebase_auth.RevokedIdTokenError:
        detail = "Authentication token has been revoked"
    except firebase_auth.InvalidIdTokenError:
        detail = "Invalid authentication token"
    except Exception as e:
        logger.error(f"Token verification error: {str(e)}")
        detail = "Authentication failed"
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def context_from_token(store, token: str) -> AdminContext:
    decoded = _verify_token(token)
    uid = decoded.get("uid")
    return AdminContext(uid=uid, email=decoded.get("email"), id_token=token, admin=load_admin(store, uid))


async def verify_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> AdminContext:
    """Authenticated administrator for protected routes; 403 when the user has no admin record."""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    context = context_from_token(request.app.state.store, credentials.credentials)
    if not context.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return context


async def optional_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security_scheme),
) -> Optional[AdminContext]:
    """Acting admin when a valid token is supplied (signup audit field), else None."""
    if not credentials or not credentials.credentials:
        return None
    return context_from_token(request.app.state.store, credentials.credentials)
