import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from manatomb.api import (
    auth_router,
    cards_router,
    commanders_router,
    decks_router,
    health_router,
    home_router,
    settings_router,
)
from manatomb.config import configure_logging, settings
from manatomb.db.database import init_db
from manatomb.models.failure import ApiResponse, KnownError, ValidationError, failure_payload

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    configure_logging()
    await init_db()
    logger.info("%s started", settings.app_name)
    yield


def _app_version() -> str:
    try:
        return pkg_version("manatomb")
    except PackageNotFoundError:
        return "0.0.0"


app = FastAPI(
    title=settings.app_name,
    version=_app_version(),
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(cards_router)
app.include_router(commanders_router)
app.include_router(decks_router)
app.include_router(health_router)
app.include_router(home_router)
app.include_router(settings_router)


@app.exception_handler(KnownError)
async def known_error_handler(request: Request, exc: KnownError) -> JSONResponse:
    """Classified failures keep their status code and message."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.kind.value)
    return JSONResponse(status_code=exc.status_code, content=failure_payload(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies, paths and queries answer with the validation envelope."""
    errors = exc.errors()
    field = None
    if errors and errors[0].get("loc"):
        field = str(errors[0]["loc"][-1])
    error = ValidationError("The request is missing a value or has one of the wrong type.", field)
    return JSONResponse(status_code=error.status_code, content=failure_payload(error))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Per-request error boundary.

    Anything unclassified is logged with its stack trace and answered with a
    generic 500; the process keeps serving.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ApiResponse.unknown_failure().model_dump(mode="json"),
    )
