"""
FastAPI application initialization and configuration.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from errors import AuthError, DecodeError, RelayError, StoreError, TransportError, ValidationError
from openai_oauth import CredentialStore
from .handlers.chat_handler import CompletionOrchestrator
from .middleware import log_requests_middleware
from .endpoints import auth_router, chat_router, health_router

logger = logging.getLogger(__name__)


def error_response(exc: RelayError) -> JSONResponse:
    """Map a pre-stream relay error to its HTTP status and JSON body"""
    if isinstance(exc, ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})
    if isinstance(exc, AuthError):
        return JSONResponse(status_code=401, content={"error": f"authentication error: {exc}"})
    if isinstance(exc, (TransportError, DecodeError)):
        return JSONResponse(status_code=502, content={"error": f"upstream error: {exc}"})
    return JSONResponse(status_code=500, content={"error": "internal error"})


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if isinstance(exc, (StoreError, TransportError, DecodeError)):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return error_response(exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the conversation store for the lifetime of the server"""
    store = app.state.orchestrator.conversations
    opened = False
    if not store.is_open:
        await store.open()
        opened = True
    try:
        yield
    finally:
        if opened:
            await store.close()


def create_app(orchestrator: CompletionOrchestrator, credentials: CredentialStore) -> FastAPI:
    """
    Build the relay application around already-constructed collaborators.

    Args:
        orchestrator: Shared completion orchestrator
        credentials: Credential store (also used by /auth/status)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title="Pi Agent Relay", version="1.0.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.credentials = credentials

    # Add middleware
    app.middleware("http")(log_requests_middleware)

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    # Register routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(chat_router)

    logger.debug("FastAPI application initialized with all routers and middleware")
    return app
