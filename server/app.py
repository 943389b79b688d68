import asyncio
import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import firebase_admin
from firebase_admin import credentials

from core.config import settings
from core.logging import configure_logging
from routes import health, auth, application_routes, documents, realtime
from services.auth_svc import IdentityToolkitClient
from services.document_svc import DocumentClient
from services.event_manager import event_bus, APPLICATIONS_CHANGED
from services.lifecycle_svc import ApplicationLifecycleManager
from services.rtdb_svc import RealtimeStore

logger = logging.getLogger(__name__)


def init_firebase():
    """Initialise the Admin SDK once, against the Realtime Database URL."""
    if firebase_admin._apps:
        return
    cred_path = settings.GOOGLE_APPLICATION_CREDENTIALS
    if not cred_path or not os.path.exists(cred_path):
        raise RuntimeError("Missing GOOGLE_APPLICATION_CREDENTIALS env")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {"databaseURL": settings.FIREBASE_DATABASE_URL})


def create_app(
    store=None,
    manager: Optional[ApplicationLifecycleManager] = None,
    documents_client: Optional[DocumentClient] = None,
    identity: Optional[IdentityToolkitClient] = None,
    start_listener: bool = True,
) -> FastAPI:
    app = FastAPI(
        title="Admissions Portal API",
        description="Admin backend for reviewing student applications, payments and documents",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store or RealtimeStore()
    app.state.manager = manager or ApplicationLifecycleManager(app.state.store)
    app.state.documents = documents_client or DocumentClient()
    app.state.identity = identity or IdentityToolkitClient()

    # Snapshots land on the Firebase listener thread; hop onto the server loop.
    app.state.manager.add_listener(lambda: event_bus.emit_threadsafe(APPLICATIONS_CHANGED, None))

    # ==================== Startup / Shutdown ====================

    @app.on_event("startup")
    async def startup_event():
        configure_logging(settings.LOG_LEVEL)
        logger.info("🚀 Starting Admissions Portal API...")
        event_bus.bind_loop(asyncio.get_running_loop())
        if start_listener:
            init_firebase()
            app.state.manager.start()
            logger.info(f"✅ Subscribed to '{settings.APPLICATIONS_PATH}'")

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.manager.stop()

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(application_routes.router, prefix="/api/v1/applications", tags=["applications"])
    app.include_router(documents.router, prefix="/api/v1/documents", tags=["documents"])
    app.include_router(realtime.router, prefix="/api/v1/realtime", tags=["realtime"])

    @app.get("/", tags=["root"])
    def root():
        return {
            "message": "Admissions Portal API",
            "docs": "/docs",
            "health": "/health/live",
            "websocket": "ws://localhost:8000/api/v1/realtime/ws/applications?token={id_token}",
        }

    return app


app = create_app()
