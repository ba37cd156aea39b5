"""
Feynman Tutor HTTP service.

Learner-facing failures never show up here: they ride on the snapshot as a
notice. What does reach the handlers below is caller error (unknown session,
out-of-order trigger, bad body) or a genuine server fault.
"""

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from agents.feynman_agent.errors import InvalidTransition
from api.config import get_settings
from api.routes.session_routes import session_routes
from api.services.session_service import SessionNotFound
from api.utils.logger import clear_request_id, configure_logging, set_request_id

logger = configure_logging()

app = FastAPI(title="Feynman Tutor")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    where = f"{request.method} {request.url.path}"
    try:
        response: Response = await call_next(request)
    except Exception:
        logger.exception("%s crashed", where)
        raise
    else:
        logger.info("%s -> %s", where, response.status_code)
        response.headers["x-request-id"] = rid
        return response
    finally:
        clear_request_id()


def _client_error(request: Request, status_code: int, content: dict) -> JSONResponse:
    logger.warning("%s %s rejected status=%s detail=%s", request.method, request.url.path, status_code, content)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed status=%s detail=%s", request.method, request.url.path, exc.status_code, exc.detail,
            exc_info=exc,
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return _client_error(request, exc.status_code, {"detail": exc.detail})


@app.exception_handler(SessionNotFound)
async def session_not_found_handler(request: Request, exc: SessionNotFound) -> JSONResponse:
    return _client_error(request, HTTP_404_NOT_FOUND, {"detail": str(exc), "session_id": exc.session_id})


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return _client_error(
        request,
        HTTP_409_CONFLICT,
        {"detail": str(exc), "trigger": exc.trigger, "state": exc.state},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _client_error(request, 422, {"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Internals stay in the log; the client only learns that it failed.
    logger.exception("%s %s unhandled error", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/")
def read_root():
    return {"message": "Feynman Tutor is Healthy"}


app.include_router(session_routes)

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
