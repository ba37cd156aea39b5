"""
In-memory WebSocket subscribers per learning session_id.
Every snapshot a session emits is pushed to all of its subscribers.
"""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket

# session_id -> set of WebSocket connections
_subscribers: dict[str, set[WebSocket]] = {}


def subscribe_session(session_id: str, ws: WebSocket) -> None:
    """Add a WebSocket to the subscriber set for this session_id."""
    if session_id not in _subscribers:
        _subscribers[session_id] = set()
    _subscribers[session_id].add(ws)


def unsubscribe_session(session_id: str, ws: WebSocket) -> None:
    """Remove a WebSocket from the subscriber set."""
    if session_id in _subscribers:
        _subscribers[session_id].discard(ws)
        if not _subscribers[session_id]:
            del _subscribers[session_id]


def drop_session(session_id: str) -> None:
    """Forget every subscriber of a discarded session."""
    _subscribers.pop(session_id, None)


def subscriber_count(session_id: str) -> int:
    return len(_subscribers.get(session_id, ()))


async def broadcast_session_snapshot(session_id: str, payload: dict[str, Any]) -> None:
    """
    Send payload to all WebSockets subscribed to this session_id.
    Payload is SessionSnapshot.to_serializable(); dead sockets are dropped.
    """
    if session_id not in _subscribers:
        return
    dead: set[WebSocket] = set()
    for ws in list(_subscribers[session_id]):
        try:
            await ws.send_json(payload)
        except Exception:
            dead.add(ws)
    for ws in dead:
        _subscribers[session_id].discard(ws)
    if session_id in _subscribers and not _subscribers[session_id]:
        del _subscribers[session_id]
