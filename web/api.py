"""FastAPI web application for debate rooms."""

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from debate_engine.exceptions import (
    ConflictError,
    DebateRoomError,
    ExternalServiceError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from web.room_manager import RoomManager

from web.endpoints.motions import router as motions_router
from web.endpoints.rooms import router as rooms_router, ws_router as rooms_ws_router
from web.endpoints.speeches import router as speeches_router, ws_router as speeches_ws_router
from web.endpoints.system import router as system_router

logger: logging.Logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: list[tuple[type[DebateRoomError], int]] = [
    (NotFoundError, 404),
    (InvalidStateError, 400),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (ValidationError, 422),
    (ExternalServiceError, 502),
]


def status_code_for(error: DebateRoomError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def debate_room_error_handler(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, DebateRoomError)
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Room operation failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def get_allowed_origins() -> list[str] | None:
    """Get CORS origins from environment or use development defaults."""
    env_origins: str | None = os.environ.get("ALLOWED_ORIGINS")
    if env_origins:
        origins = [origin.strip() for origin in env_origins.split(",")]
        return origins
    return None


def create_app(room_manager: RoomManager | None = None) -> FastAPI:
    """Build the application; a room manager is created from config at startup unless given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if getattr(app.state, "room_manager", None) is None:
            from config.settings import get_default_config

            app.state.room_manager = RoomManager(get_default_config())
            logger.info("Room manager initialized")

        yield

        await app.state.room_manager.shutdown()
        logger.info("Room manager stopped")

    app = FastAPI(
        title="Debate Rooms",
        description="Live Asian Parliamentary debate rooms with AI motions and feedback",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.room_manager = room_manager

    allowed_origins = get_allowed_origins()
    if allowed_origins:
        logger.info(f"Setting CORS allowed origins: {allowed_origins}")

        # Production: Use specific origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.info("No ALLOWED_ORIGINS set, using development CORS settings")

        # Development: Allow any localhost/127.0.0.1
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(DebateRoomError, debate_room_error_handler)

    app.include_router(system_router, prefix="/v1")
    app.include_router(rooms_router, prefix="/v1")
    app.include_router(motions_router, prefix="/v1")
    app.include_router(speeches_router, prefix="/v1")
    app.include_router(rooms_ws_router, prefix="/v1")
    app.include_router(speeches_ws_router, prefix="/v1")

    return app


app: FastAPI = create_app()
