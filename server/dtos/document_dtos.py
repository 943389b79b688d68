from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from dtos.application_dtos import Guardian


class DocumentMeta(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    originalName: Optional[str] = None
    size: Optional[int] = None


class DocumentBundle(BaseModel):
    """Uploaded supporting files for one student, as served by the upload API."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    studentCode: Optional[str] = None
    idNumber: Optional[str] = None

    documents: Dict[str, str] = {}
    documentsMeta: Dict[str, DocumentMeta] = {}
    documentsUploadedAt: Optional[str] = None
    guardian: Optional[Guardian] = None


class DocumentServiceResponse(BaseModel):
    success: bool
    data: Optional[DocumentBundle] = None
    error: Optional[str] = None


class DocumentEntry(BaseModel):
    type: str
    label: str
    url: str
    originalName: Optional[str] = None
    size: Optional[int] = None
    sizeLabel: Optional[str] = None


class StudentDocumentsResponse(BaseModel):
    uid: str
    bundle: DocumentBundle
    entries: List[DocumentEntry]


class StudentSummary(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    uid: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    studentCode: Optional[str] = None
    applicationDate: Optional[str] = None
    status: Optional[str] = None
