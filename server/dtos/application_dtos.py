from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


PAID = "paid"


class Address(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None


class Guardian(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    idNumber: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    employmentStatus: Optional[str] = None
    workplace: Optional[str] = None


class Payment(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    registrationFee: Optional[str] = None
    registrationFeeDate: Optional[str] = None
    approvedBy: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.registrationFee == PAID


class Application(BaseModel):
    """One student's admission request, as stored under application/pending/{id}.

    Extra keys written by the student portal are kept so nothing is lost when
    a record is echoed back to the dashboard.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str = Field(..., description="Realtime Database key of the application")

    # --- Personal ---
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    idNumber: Optional[str] = None
    race: Optional[str] = None
    studentCode: Optional[str] = None

    # --- Administrative ---
    status: Optional[str] = Field(None, description="pending, approved or rejected; records without one appear in no tab")
    applicationDate: Optional[str] = None
    approvedDate: Optional[str] = None
    rejectedDate: Optional[str] = None
    lastUpdated: Optional[str] = None

    # --- Nested records (only present when submitted) ---
    address: Optional[Address] = None
    guardian: Optional[Guardian] = None
    payment: Optional[Payment] = None

    # --- Education ---
    highestGrade: Optional[str] = None
    attendanceType: Optional[str] = None
    previousSchool: Optional[str] = None
    schoolProvince: Optional[str] = None
    subjects: Optional[str] = None

    @classmethod
    def from_record(cls, app_id: str, record: Dict[str, Any]) -> "Application":
        return cls.model_validate({**record, "id": app_id})

    @property
    def is_paid(self) -> bool:
        return self.payment is not None and self.payment.is_paid


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0


class TransitionResponse(BaseModel):
    status: str
    id: str
    updates: Dict[str, Any]


class ApplicationListResponse(BaseModel):
    tab: ApplicationStatus
    search: str
    counts: StatusCounts
    applications: List[Application]
