from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List
from dtos.document_dtos import StudentDocumentsResponse, StudentSummary
from services.auth_svc import verify_admin, AdminContext
from services.document_svc import (
    DocumentClient,
    DocumentServiceError,
    describe_documents,
    list_students,
)
from deps import get_documents, get_store

router = APIRouter()


@router.get("/students", response_model=List[StudentSummary])
def students(
    q: str = Query("", description="Search by name, email, or student code"),
    store=Depends(get_store),
    admin: AdminContext = Depends(verify_admin),
):
    try:
        return list_students(store, q)
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch students: {e}")


@router.get("/{uid}", response_model=StudentDocumentsResponse)
async def student_documents(
    uid: str,
    documents: DocumentClient = Depends(get_documents),
    admin: AdminContext = Depends(verify_admin),
):
    try:
        bundle = await documents.fetch(uid)
    except DocumentServiceError as e:
        raise HTTPException(status_code=502, detail=e.user_message)
    return StudentDocumentsResponse(uid=uid, bundle=bundle, entries=describe_documents(bundle))
