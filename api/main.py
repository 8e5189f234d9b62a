"""
api/main.py -- FastAPI application entry point for the agenda service.

Run with:  python main.py serve
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests    -- one log line per request with latency
  2. CORSMiddleware  -- adds CORS headers for browser clients

Lifespan handles startup (settings, stores, token service, scheduler) and
shutdown (close DB connections) symmetrically. Settings are loaded first: a
missing JWT_SECRET or JWT_EXPIRES_IN raises there and the server never
starts accepting requests.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, ServiceInfoResponse
from api.routes.events import router as events_router
from api.routes.users import router as users_router
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import AgendaError
from events.scheduler import SchedulingEngine
from events.store import EventStore

APP_NAME = "agenda-api"
APP_DESCRIPTION = "Calendário de eventos com no máximo um evento por dia."
APP_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("agenda.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters:
      1. Settings first -- everything else is configured from them, and a
         missing secret must abort before any store is opened.
      2. Stores second -- both point at DATABASE_URL.
      3. Token service and scheduler last -- they wrap the above.
    """
    settings = get_settings()
    app.state.settings = settings
    app.state.user_store = UserStore(settings.database_url, settings.db_connect_timeout)
    app.state.event_store = EventStore(settings.database_url, settings.db_connect_timeout)
    app.state.token_service = TokenService(settings)
    app.state.scheduler = SchedulingEngine(app.state.event_store)
    logger.info("Agenda API started (users=%s)", app.state.user_store.has_users())

    yield

    app.state.event_store.close()
    app.state.user_store.close()
    logger.info("Agenda API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Agenda API",
    description=APP_DESCRIPTION,
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time is captured around call_next so latency is logged
# on every response.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, tags=["Users"])
app.include_router(events_router, tags=["Events"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {"error": ...} envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AgendaError)
async def agenda_error_handler(request: Request, exc: AgendaError) -> JSONResponse:
    """Render a domain error with the status code it carries.

    StorageUnavailableError was already logged with its traceback at the
    point it was raised; the body holds only the generic message.
    """
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.detail).model_dump(),
    )


def _validation_messages(errors) -> list[str]:
    """Flatten Pydantic errors into "field: reason" strings."""
    messages: list[str] = []
    for err in errors:
        fields = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        field = ".".join(fields)
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return messages


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with every field problem when the body or path fails validation."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error=_validation_messages(exc.errors())).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the {"error": ...} envelope for routing errors (404, 405)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error="Erro interno do servidor.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Service info
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/", tags=["Health"])
async def service_info() -> ServiceInfoResponse:
    """Return service name, description and version. Public."""
    return ServiceInfoResponse(name=APP_NAME, description=APP_DESCRIPTION, version=APP_VERSION)
