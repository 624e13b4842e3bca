"""FastAPI application and route handlers."""

import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from functools import partial
from typing import Annotated, Any

import httpx
from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import Settings, get_settings
from .exceptions import BudgetAPIError, ExpansionFailedError
from .middleware import add_request_id
from .models import ErrorResponse, ExpandResponse, HealthResponse, StatusResponse
from .providers import ExpansionProvider, create_provider
from .service import TipExpansionService, parse_expand_request
from .storage import create_expansion_cache

SERVICE_NAME = "budget-app-api"

# Records logged outside a request carry this id
NO_REQUEST_ID = "-"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[request_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def configure_logging(settings: Settings) -> None:
    """Configure logging - should be called at startup, not import time."""
    logger.remove()
    logger.configure(extra={"request_id": NO_REQUEST_ID})
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=settings.log_level,
        serialize=False,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            format=LOG_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging(get_settings())

    if app.state.owns_http_client:
        app.state.http_client = httpx.AsyncClient()

    service: TipExpansionService = app.state.expansion_service
    await service.cache.startup()
    logger.info("Application started successfully")

    yield

    await service.cache.shutdown()
    http_client: httpx.AsyncClient | None = app.state.http_client
    if app.state.owns_http_client and http_client is not None:
        await http_client.aclose()
        app.state.http_client = None
    logger.info("Application shutdown complete")


def get_http_client(app: FastAPI) -> httpx.AsyncClient:
    """Shared outbound client opened by the lifespan.

    Raises:
        RuntimeError: If the application lifespan is not running.
    """
    http_client: httpx.AsyncClient | None = app.state.http_client
    if http_client is None or http_client.is_closed:
        raise RuntimeError("Outbound HTTP client is not open; is the application running?")
    return http_client


def app_provider_factory(app: FastAPI, settings: Settings) -> ExpansionProvider:
    """Build the OpenRouter provider over the application's shared client."""
    return create_provider(settings, get_http_client(app))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with clean messages."""
    error_messages = []

    for error in exc.errors():
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Missing {field}"
            case "json_invalid":
                message = "Invalid JSON format"

        error_messages.append(message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "error": "; ".join(error_messages)},
    )


async def budget_api_exception_handler(request: Request, exc: BudgetAPIError) -> JSONResponse:
    """Render domain errors as ``{ok: false, error}``."""
    if exc.status_code >= 500:
        logger.error(f"Budget API error: {exc}")
    else:
        logger.warning(f"Request rejected ({exc.status_code}): {exc}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": str(exc)},
    )


def get_expansion_service(request: Request) -> TipExpansionService:
    """Get the expansion service bound to the application."""
    return request.app.state.expansion_service


async def expand_tip_handler(
    service: Annotated[TipExpansionService, Depends(get_expansion_service)],
    payload: Annotated[Any, Body()] = None,
) -> ExpandResponse:
    """Expand a tip, from cache when possible.

    Provider problems still answer 200 with a fallback expansion; only
    request-shape and lookup problems produce error statuses.
    """
    tip_id = parse_expand_request(payload)
    try:
        result = await service.expand(tip_id)
    except BudgetAPIError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error expanding {tip_id}")
        raise ExpansionFailedError(str(e) or "Expansion failed") from e

    return ExpandResponse(data=result.expansion, cached=result.cached)


async def status_handler(
    service: Annotated[TipExpansionService, Depends(get_expansion_service)],
) -> StatusResponse:
    """Report whether a key is configured, without leaking it."""
    info = service.status()
    return StatusResponse(key_present=info["keyPresent"], model=info["model"])


async def health_handler() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(service=SERVICE_NAME, time=datetime.now(UTC))


def create_app(
    service: TipExpansionService | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        service: Pre-built expansion service. When omitted, one is built with a
            fresh in-memory cache and the OpenRouter provider; its outbound
            HTTP client is opened and closed by the lifespan.
        settings: Settings used for CORS. Read from the environment if omitted.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Budget Tips API",
        version="1.0.0",
        description="Daily financial tips with AI deeper-dive expansions",
        lifespan=lifespan,
    )

    app.state.owns_http_client = service is None
    app.state.http_client = None
    if service is None:
        service = TipExpansionService(
            cache=create_expansion_cache(),
            provider_factory=partial(app_provider_factory, app),
        )
    app.state.expansion_service = service

    app.middleware("http")(add_request_id)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(BudgetAPIError, budget_api_exception_handler)  # type: ignore[arg-type]

    app.post(
        "/api/tips/expand",
        response_model=ExpandResponse,
        response_model_exclude_none=True,
        responses=ERROR_RESPONSES,
        tags=["tips"],
    )(expand_tip_handler)
    app.get("/api/status", response_model=StatusResponse, tags=["health"])(status_handler)
    app.get("/api/health", response_model=HealthResponse, tags=["health"])(health_handler)

    app.openapi_tags = [
        {"name": "tips", "description": "Tip expansions"},
        {"name": "health", "description": "Health and status checks"},
    ]
    return app


app = create_app()
