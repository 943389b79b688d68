"""
WebSocket endpoint for the live admin dashboard.

Each connection carries its own DashboardView (tab, search, open detail) and
receives a freshly rendered view whenever the applications tree changes.
"""
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from typing import Set
import logging

from services.auth_svc import context_from_token
from services.dashboard_svc import DashboardView
from services.event_manager import (
    event_bus,
    APPLICATIONS_CHANGED,
    APPLICATION_APPROVED,
    APPLICATION_REJECTED,
    APPLICATION_DELETED,
)

router = APIRouter()
logger = logging.getLogger(__name__)

# Track active WebSocket connections
active_connections: Set[WebSocket] = set()

_CLOSING_EVENTS = (APPLICATION_APPROVED, APPLICATION_REJECTED, APPLICATION_DELETED)


@router.websocket("/ws/applications")
async def dashboard_updates(websocket: WebSocket, token: str = Query(...)):
    """
    Example:
        ws://localhost:8000/api/v1/realtime/ws/applications?token=<firebase id token>

    Client messages: {"tab": "approved"}, {"search": "jane"}, {"select": "<id>"}, {"close": true}
    """
    try:
        context = context_from_token(websocket.app.state.store, token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if not context.is_admin:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    active_connections.add(websocket)
    view = DashboardView(websocket.app.state.manager)

    async def push(_payload=None):
        await websocket.send_json(view.render())

    async def on_action(payload):
        view.close_if(payload.get("id"))
        await push()

    event_bus.subscribe(APPLICATIONS_CHANGED, push)
    for event in _CLOSING_EVENTS:
        event_bus.subscribe(event, on_action)

    try:
        await push()
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                await websocket.send_json({"error": "Expected a JSON object"})
                continue
            try:
                view.handle_message(message)
            except ValueError as e:
                await websocket.send_json({"error": f"Invalid message: {e}"})
                continue
            except KeyError as e:
                await websocket.send_json({"error": f"Application {e} not found"})
                continue
            await push()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error on dashboard channel: {e}")
    finally:
        event_bus.unsubscribe(APPLICATIONS_CHANGED, push)
        for event in _CLOSING_EVENTS:
            event_bus.unsubscribe(event, on_action)
        active_connections.discard(websocket)
        logger.info(f"Dashboard client {context.uid} disconnected")


@router.get("/connections")
async def connection_count():
    return {"active_connections": len(active_connections)}
