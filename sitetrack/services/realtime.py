import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

import anyio
import structlog
from fastapi import WebSocket
from fastapi.requests import HTTPConnection


logger = structlog.get_logger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def parse_filter(value: Union[str, Dict[str, Any], None]) -> Dict[str, str]:
    """Accept ``{"year": 2025}`` or ``"year=eq.2025"`` (comma separated for several columns)."""
    if not value:
        return {}
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    out: Dict[str, str] = {}
    for part in str(value).split(","):
        part = part.strip()
        if not part:
            continue
        column, sep, rest = part.partition("=")
        if not sep or not rest.startswith("eq."):
            raise ValueError(f"Unsupported filter: {part!r}")
        out[column.strip()] = rest[3:]
    return out


def value_matches(actual: Any, expected: str) -> bool:
    """Compare a column value with the text of an ``eq.`` filter."""
    if actual is None:
        return expected.lower() in {"null", "none"}
    if isinstance(actual, bool):
        return str(actual).lower() == expected.strip().lower()
    if isinstance(actual, (int, float)):
        try:
            return float(actual) == float(expected)
        except ValueError:
            return False
    return str(actual) == expected


@dataclass
class Subscription:
    table: str
    filters: Dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def matches(self, table: str, record: Optional[Dict[str, Any]]) -> bool:
        if table != self.table:
            return False
        if not self.filters:
            return True
        if not record:
            return False
        return all(value_matches(record.get(k), v) for k, v in self.filters.items())


class ChangeHub:
    def __init__(self) -> None:
        # user_id (str) -> set of WebSocket connections
        self._user_connections: Dict[str, Set[WebSocket]] = {}
        # WebSocket -> subscriptions opened on it
        self._subscriptions: Dict[WebSocket, List[Subscription]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            self._user_connections.setdefault(user_id, set()).add(ws)
            self._subscriptions.setdefault(ws, [])

    async def disconnect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._user_connections.get(user_id)
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._user_connections.pop(user_id, None)
            self._subscriptions.pop(ws, None)

    async def subscribe(self, ws: WebSocket, table: str, filters: Dict[str, str]) -> Subscription:
        sub = Subscription(table=table, filters=filters)
        async with self._lock:
            self._subscriptions.setdefault(ws, []).append(sub)
        return sub

    async def unsubscribe(self, ws: WebSocket, subscription_id: str) -> bool:
        async with self._lock:
            subs = self._subscriptions.get(ws, [])
            kept = [s for s in subs if s.id != subscription_id]
            if len(kept) == len(subs):
                return False
            self._subscriptions[ws] = kept
            return True

    async def publish(
        self,
        table: str,
        change_type: str,
        record: Optional[Dict[str, Any]] = None,
        old_record: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Push a change to every matching subscription. Returns the number of messages sent."""
        match_on = record if change_type != DELETE else old_record
        async with self._lock:
            targets = [
                (ws, sub)
                for ws, subs in self._subscriptions.items()
                for sub in subs
                if sub.matches(table, match_on)
            ]
        sent = 0
        for ws, sub in targets:
            data = {
                "event": "change",
                "data": {
                    "type": change_type,
                    "table": table,
                    "record": record,
                    "old_record": old_record,
                    "subscription": sub.id,
                },
            }
            try:
                await ws.send_json(data)
                sent += 1
            except Exception as e:
                # best-effort; dead sockets are cleaned up on disconnect
                logger.warning("realtime_send_failed", table=table, error=str(e))
        return sent

    async def send_to_user(self, user_id: str, event: str, payload: Any) -> None:
        data = {"event": event, "data": payload}
        async with self._lock:
            targets = list(self._user_connections.get(user_id, set()))
        for ws in targets:
            try:
                await ws.send_json(data)
            except Exception as e:
                logger.warning("realtime_send_failed", user_id=user_id, error=str(e))


def publish_change(
    conn: HTTPConnection,
    table: str,
    change_type: str,
    record: Optional[Dict[str, Any]] = None,
    old_record: Optional[Dict[str, Any]] = None,
) -> None:
    """Publish from a sync route handler (runs in a worker thread)."""
    hub: ChangeHub = conn.app.state.hub

    async def _publish():
        await hub.publish(table, change_type, record, old_record)

    anyio.from_thread.run(_publish)


def notify_user(conn: HTTPConnection, user_id: str, event: str, payload: Any) -> None:
    hub: ChangeHub = conn.app.state.hub

    async def _notify():
        await hub.send_to_user(user_id, event, payload)

    anyio.from_thread.run(_notify)
