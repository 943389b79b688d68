"""
Client for the external student-documents upload API.

The API is unauthenticated and called once per request: no retries, no
caching. Any failure is raised as DocumentServiceError with a message fit
for display in the documents panel.
"""
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from core.config import settings
from dtos.document_dtos import (
    DocumentBundle,
    DocumentEntry,
    DocumentServiceResponse,
    StudentSummary,
)
from services.lifecycle_svc import matches_search

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "Failed to fetch documents"

DOCUMENT_LABELS = {
    "studentIdCopy": "Student ID Copy",
    "previousResults": "Previous School Results",
    "guardianIdCopy": "Guardian ID Copy",
}

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


class DocumentServiceError(Exception):
    @property
    def user_message(self) -> str:
        message = str(self) or DEFAULT_ERROR
        if message.startswith(DEFAULT_ERROR):
            return message
        return f"{DEFAULT_ERROR}: {message}"


def format_file_size(size: Optional[int]) -> Optional[str]:
    """Human readable size, e.g. 1536 -> '1.5 KB'."""
    if size is None:
        return None
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    i = 0
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[i]}"


def describe_documents(bundle: DocumentBundle) -> List[DocumentEntry]:
    entries = []
    for doc_type, url in bundle.documents.items():
        meta = bundle.documentsMeta.get(doc_type)
        entries.append(DocumentEntry(
            type=doc_type,
            label=DOCUMENT_LABELS.get(doc_type, doc_type),
            url=url,
            originalName=meta.originalName if meta else None,
            size=meta.size if meta else None,
            sizeLabel=format_file_size(meta.size) if meta else None,
        ))
    return entries


class DocumentClient:
    def __init__(
        self,
        base_url: str = settings.DOCUMENTS_API_URL,
        timeout: float = settings.DOCUMENTS_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, uid: str) -> DocumentBundle:
        """GET /get-documents?uid=... and return the student's bundle."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/get-documents", params={"uid": uid})
        except httpx.HTTPError as e:
            logger.error(f"Error fetching documents for {uid}: {e}")
            raise DocumentServiceError(str(e) or DEFAULT_ERROR) from e

        if response.status_code != 200:
            logger.warning(f"Document API returned {response.status_code} for {uid}")
            raise DocumentServiceError(DEFAULT_ERROR)

        try:
            body = DocumentServiceResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Malformed document API response for {uid}: {e}")
            raise DocumentServiceError(DEFAULT_ERROR) from e

        if not body.success or body.data is None:
            raise DocumentServiceError(body.error or DEFAULT_ERROR)
        return body.data


def list_students(store, query: str = "", path: str = settings.APPLICATIONS_PATH) -> List[StudentSummary]:
    """One-shot read of the applications tree for the documents browser (no subscription)."""
    data = store.get(path) or {}
    students = []
    for uid, record in data.items():
        if not isinstance(record, dict) or not matches_search(record, query):
            continue
        students.append(StudentSummary(
            uid=str(uid),
            firstName=record.get("firstName"),
            lastName=record.get("lastName"),
            email=record.get("email"),
            studentCode=record.get("studentCode"),
            applicationDate=record.get("applicationDate"),
            status=record.get("status"),
        ))
    return students
