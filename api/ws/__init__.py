"""WebSocket broadcast for learning session snapshots."""

from api.ws.session_broadcast import (
    broadcast_session_snapshot,
    drop_session,
    subscribe_session,
    unsubscribe_session,
)

__all__ = ["broadcast_session_snapshot", "drop_session", "subscribe_session", "unsubscribe_session"]
