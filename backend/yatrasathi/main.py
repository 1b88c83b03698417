import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.guard import GuardRedirect, GuardState
from .config import settings
from .dependencies import close_workspaces
from .errors import (
    AppError,
    InternalError,
    ValidationError,
    error_for_status,
    error_payload,
)
from .infrastructure.redis import close_redis, get_redis, init_redis
from .routers import auth, console, pages


def configure_logging() -> int:
    """Root logging from LOG_LEVEL; an unknown level name falls back to INFO."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger("yatrasathi").setLevel(level)
    return level


configure_logging()
logger = logging.getLogger("yatrasathi")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (backend %s)", settings.app_name, settings.api_base_url)
    if settings.debug:
        logger.warning("DEBUG=true, session cookies are sent without the Secure flag")
    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("REDIS_URL not set, sessions are kept in process memory")

    try:
        yield
    finally:
        await close_workspaces()
        await close_redis()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

for router in (auth.router, pages.router, console.router):
    app.include_router(router)


def _log_error(request: Request, status_code: int, code: str, message: str, exc: Exception | None = None) -> None:
    request_id = request.headers.get("x-request-id") or "n/a"
    log = logger.error if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log(
        "[%s] %s %s request_id=%s message=%s",
        code, request.method, request.url.path, request_id, message,
        exc_info=exc if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else None,
    )


@app.exception_handler(GuardRedirect)
async def handle_guard_redirect(request: Request, exc: GuardRedirect) -> Response:
    decision = exc.decision
    if decision.state is GuardState.LOADING or decision.redirect_to is None:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={"state": decision.state.value, "message": "Loading..."},
        )
    logger.info(
        "Guard redirect %s -> %s (%s)", request.url.path, decision.redirect_to, decision.state.value
    )
    # 303 so the browser follows with GET and the guarded URL is replaced
    return RedirectResponse(decision.redirect_to, status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    _log_error(request, exc.status_code, exc.code, exc.message, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.code, exc.message, exc.details),
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Covers fastapi.HTTPException too; framework detail text is logged, not returned
    code, safe_message = error_for_status(exc.status_code)
    detail = exc.detail if isinstance(exc.detail, str) and exc.detail.strip() else safe_message
    _log_error(request, exc.status_code, code, detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(code, safe_message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "Request validation failed"
    _log_error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, ValidationError.code, message)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_payload(ValidationError.code, message, exc.errors()),
    )


@app.exception_handler(Exception)
async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    _log_error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.code, str(exc), exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(InternalError.code, InternalError.message),
    )


@app.get("/health", tags=["health"])
async def healthcheck() -> JSONResponse:
    """Liveness plus the session store, when one is configured."""
    if settings.redis_url:
        try:
            await get_redis().ping()
        except (RedisError, RuntimeError) as exc:
            logger.error("Healthcheck session store ping failed: %s", exc)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "error", "session_store": "unavailable"},
            )

    return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "ok"})
