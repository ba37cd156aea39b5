"""
Session service: owns the live learning sessions, keyed by session id.
Sessions live in memory only; discarding a session forgets it.
"""

from enum import Enum
from typing import Any, Callable, Awaitable, Dict, Optional
from uuid import uuid4

from agents.feynman_agent.pipeline import ContentPipeline
from agents.feynman_agent.schemas import SessionSnapshot
from agents.feynman_agent.session import LearningSession
from api.utils.logger import configure_logging, log_request, set_session_id
from api.ws.session_broadcast import broadcast_session_snapshot, drop_session

logger = configure_logging()


class SessionTrigger(str, Enum):
    """Control operations a client can fire; values are LearningSession method names."""
    START = "start"
    REQUEST_VERIFICATION = "request_verification"
    SUBMIT = "submit"
    PROCEED = "proceed"
    SIMPLIFY = "simplify"
    END_SESSION = "end_session"


class SessionNotFound(Exception):
    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


def _broadcaster(session_id: str) -> Callable[[SessionSnapshot], Awaitable[None]]:
    async def _send(snapshot: SessionSnapshot) -> None:
        await broadcast_session_snapshot(session_id, snapshot.to_serializable())
    return _send


class LearningSessionService:
    """Creates, looks up and drives learning sessions."""

    def __init__(self, pipeline: ContentPipeline):
        self.pipeline = pipeline
        self._sessions: Dict[str, LearningSession] = {}

    def create_session(self) -> LearningSession:
        session_id = str(uuid4())
        session = LearningSession(self.pipeline, session_id=session_id)
        session.subscribe(_broadcaster(session_id))
        self._sessions[session_id] = session
        logger.info("session created session_id=%s active=%d", session_id, len(self._sessions))
        return session

    def get_session(self, session_id: str) -> LearningSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard_session(self, session_id: str) -> None:
        """Forget a session; a provider call still in flight finishes into nothing."""
        session = self.get_session(session_id)
        del self._sessions[session_id]
        drop_session(session_id)
        logger.info("session discarded session_id=%s state=%s", session_id, session.state.value)

    async def run(self, session_id: str, trigger: SessionTrigger, *args: Any) -> SessionSnapshot:
        """Fire one control operation and return the resulting snapshot."""
        session = self.get_session(session_id)
        set_session_id(session_id)
        try:
            with log_request(logger, f"session {trigger.value}"):
                return await getattr(session, trigger.value)(*args)
        finally:
            set_session_id(None)


_service: Optional[LearningSessionService] = None


def get_session_service() -> LearningSessionService:
    """FastAPI dependency; the service is built on first use."""
    global _service
    if _service is None:
        from api.bootstrap import build_pipeline

        _service = LearningSessionService(build_pipeline())
    return _service
