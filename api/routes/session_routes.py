"""
Learning session control surface: one route per trigger, each returning the
updated session snapshot. A WebSocket per session streams every snapshot.
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from api.schemas.session_schemas import (
    ProviderHealthResponse,
    StartSessionRequest,
    SubmitAnswersRequest,
)
from api.services.session_service import (
    LearningSessionService,
    SessionNotFound,
    SessionTrigger,
    get_session_service,
)
from api.utils.logger import configure_logging
from api.ws.session_broadcast import subscribe_session, unsubscribe_session

session_routes = APIRouter()
logger = configure_logging()


@session_routes.post("/sessions")
async def create_session(
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    """Create a fresh session in IDLE. Returns its snapshot (including session_id)."""
    session = service.create_session()
    return session.snapshot().to_serializable()


@session_routes.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    return service.get_session(session_id).snapshot().to_serializable()


@session_routes.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    service.discard_session(session_id)
    return {"session_id": session_id, "deleted": True}


@session_routes.post("/sessions/{session_id}/start")
async def start_session(
    session_id: str,
    body: StartSessionRequest,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    """Plan checkpoints for the topic and load the first lesson."""
    snapshot = await service.run(session_id, SessionTrigger.START, body.topic, body.notes)
    return snapshot.to_serializable()


@session_routes.post("/sessions/{session_id}/verify")
async def request_verification(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    snapshot = await service.run(session_id, SessionTrigger.REQUEST_VERIFICATION)
    return snapshot.to_serializable()


@session_routes.post("/sessions/{session_id}/submit")
async def submit_answers(
    session_id: str,
    body: SubmitAnswersRequest,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    snapshot = await service.run(session_id, SessionTrigger.SUBMIT, body.answers)
    return snapshot.to_serializable()


@session_routes.post("/sessions/{session_id}/proceed")
async def proceed(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    snapshot = await service.run(session_id, SessionTrigger.PROCEED)
    return snapshot.to_serializable()


@session_routes.post("/sessions/{session_id}/simplify")
async def simplify(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    snapshot = await service.run(session_id, SessionTrigger.SIMPLIFY)
    return snapshot.to_serializable()


@session_routes.post("/sessions/{session_id}/end")
async def end_session(
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> dict:
    snapshot = await service.run(session_id, SessionTrigger.END_SESSION)
    return snapshot.to_serializable()


@session_routes.get("/provider/health", response_model=ProviderHealthResponse)
async def provider_health(
    service: LearningSessionService = Depends(get_session_service),
) -> ProviderHealthResponse:
    llm = service.pipeline.llm
    probe = getattr(llm, "is_available", None)
    available = bool(await probe()) if probe is not None else True
    return ProviderHealthResponse(
        model=str(getattr(llm, "model", type(llm).__name__)),
        base_url=str(getattr(llm, "base_url", "")),
        available=available,
    )


@session_routes.websocket("/sessions/{session_id}/ws")
async def session_ws(
    websocket: WebSocket,
    session_id: str,
    service: LearningSessionService = Depends(get_session_service),
) -> None:
    """Push the current snapshot, then every snapshot the session emits."""
    try:
        session = service.get_session(session_id)
    except SessionNotFound:
        await websocket.close(code=4404)
        return
    await websocket.accept()
    subscribe_session(session_id, websocket)
    try:
        await websocket.send_json(session.snapshot().to_serializable())
        while True:
            # Clients don't send anything meaningful; this only waits for disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("ws disconnected session_id=%s", session_id)
    finally:
        unsubscribe_session(session_id, websocket)
