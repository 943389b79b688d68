from fastapi import Request

from services.lifecycle_svc import ApplicationLifecycleManager
from services.document_svc import DocumentClient
from services.auth_svc import IdentityToolkitClient


def get_manager(request: Request) -> ApplicationLifecycleManager:
    """The process-wide applications mirror."""
    return request.app.state.manager


def get_store(request: Request):
    return request.app.state.store


def get_documents(request: Request) -> DocumentClient:
    return request.app.state.documents


def get_identity(request: Request) -> IdentityToolkitClient:
    return request.app.state.identity
