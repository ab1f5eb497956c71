import json
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from ..auth.security import decode_token, resolve_user
from ..db import Base
from ..models import models  # noqa: F401
from ..services.realtime import ChangeHub, parse_filter
from ..logging import structlog


router = APIRouter(tags=["realtime"])
logger = structlog.get_logger(__name__)

PRIVATE_TABLES = {"users", "revoked_tokens"}


def subscribable_tables():
    return sorted(t for t in Base.metadata.tables if t not in PRIVATE_TABLES)


def _authenticate(websocket: WebSocket, token: str) -> str:
    state = websocket.app.state
    payload = decode_token(state.settings, token)
    db = state.session_factory()
    try:
        return str(resolve_user(db, payload).id)
    finally:
        db.close()


async def _handle(websocket: WebSocket, hub: ChangeHub, message: dict) -> None:
    action = message.get("action")
    if action == "subscribe":
        table = message.get("table")
        if table not in subscribable_tables():
            await websocket.send_json({"event": "error", "data": {"message": f"Unknown table {table!r}"}})
            return
        try:
            filters = parse_filter(message.get("filter"))
        except ValueError as e:
            await websocket.send_json({"event": "error", "data": {"message": str(e)}})
            return
        sub = await hub.subscribe(websocket, table, filters)
        await websocket.send_json({"event": "subscribed", "data": {"id": sub.id, "table": table, "filter": filters}})
    elif action == "unsubscribe":
        removed = await hub.unsubscribe(websocket, str(message.get("id")))
        await websocket.send_json({"event": "unsubscribed", "data": {"id": message.get("id"), "removed": removed}})
    else:
        await websocket.send_json({"event": "error", "data": {"message": f"Unknown action {action!r}"}})


@router.websocket("/ws/changes")
async def ws_changes(websocket: WebSocket, token: Optional[str] = None):
    if not token:
        await websocket.close(code=4401)
        return
    try:
        user_id = _authenticate(websocket, token)
    except HTTPException:
        await websocket.close(code=4401)
        return

    hub: ChangeHub = websocket.app.state.hub
    await websocket.accept()
    await hub.connect(user_id, websocket)
    logger.info("realtime_connected", user_id=user_id)

    try:
        while True:
            data = await websocket.receive_text()
            if data and data.strip().lower() in {"ping", "keepalive"}:
                await websocket.send_text("pong")
                continue
            try:
                message = json.loads(data)
            except ValueError:
                await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "error", "data": {"message": "Expected an object"}})
                continue
            await _handle(websocket, hub, message)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(user_id, websocket)
        logger.info("realtime_disconnected", user_id=user_id)
