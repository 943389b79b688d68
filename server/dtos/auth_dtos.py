from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, EmailStr

AdminRole = Literal["admin", "super_admin", "admissions_officer", "academic_officer"]
Department = Literal["", "admissions", "academics", "administration", "finance", "student_affairs", "it"]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    is_admin: bool
    admin: Optional[Dict[str, Any]] = None


class AdminSignupRequest(BaseModel):
    # Plain str on purpose: blank fields are reported by validate_signup,
    # malformed addresses by Firebase (INVALID_EMAIL).
    firstName: str = ""
    lastName: str = ""
    email: str = ""
    password: str = ""
    confirmPassword: str = ""
    phone: str = ""
    role: AdminRole = "admin"
    department: Department = ""


class AdminRecord(BaseModel):
    uid: str
    firstName: str
    lastName: str
    email: str
    phone: str
    role: str
    department: str
    createdAt: str
    createdBy: str
    status: str = "active"


class SignupResponse(BaseModel):
    status: str
    message: str
    admin: AdminRecord
