"""
Delivery Control — FastAPI Application Entry Point

Wires together:
  - Store API router
  - Platform gateway lifecycle (clients + token renewers start on startup,
    renewers stop on shutdown)
  - CORS middleware
  - Request logging middleware
  - Error handlers mapping every failure to an ErrorResponse body
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from delivery_control.api.stores import router as stores_router
from delivery_control.core.config import get_settings
from delivery_control.core.errors import PlatformError, http_status_for_kind
from delivery_control.models.schemas import ErrorKind, ErrorResponse, HealthResponse
from delivery_control.services.gateway import PlatformGateway

settings = get_settings()

# --- Logging ---
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("delivery_control")


# --- Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    current = get_settings()
    if not current.BEARER_TOKEN:
        raise RuntimeError("The BEARER_TOKEN environment variable is required")

    logger.info("Starting Delivery Control API...")
    app.state.gateway = PlatformGateway.from_settings(current)
    logger.info(f"Platform clients started: {[p.value for p in app.state.gateway.platforms]}")
    logger.info(f"Environment: {current.APP_ENV}")
    yield
    logger.info("Shutting down Delivery Control API...")
    await app.state.gateway.shutdown()
    logger.info("Shutdown complete")


# --- App ---
app = FastAPI(
    title="Delivery Control API",
    description="Uniform store activation across delivery platforms",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.APP_ENV == "development" else None,
    redoc_url="/redoc" if settings.APP_ENV == "development" else None,
)


# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)

    # Skip noisy health check logs
    if request.url.path != "/health":
        logger.info(
            f"{request.method} {request.url.path} "
            f"→ {response.status_code} ({duration}ms)"
        )
    return response


# --- Exception handlers ---
def _error_response(status_code: int, kind: ErrorKind, message: str, headers=None) -> JSONResponse:
    body = ErrorResponse(error=kind, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


_KIND_BY_HTTP_STATUS = {
    400: ErrorKind.INVALID_REQUEST,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.UNAUTHORIZED,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.INVALID_REQUEST,
}


@app.exception_handler(PlatformError)
async def platform_error_handler(request: Request, exc: PlatformError):
    """Translate a normalized platform failure into its HTTP status."""
    status_code = http_status_for_kind(exc.kind)
    if status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.kind.value} "
            f"(platform status={exc.http_status}, body={exc.body!r})"
        )
    return _error_response(status_code, exc.kind, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kind = _KIND_BY_HTTP_STATUS.get(exc.status_code, ErrorKind.INTERNAL)
    return _error_response(exc.status_code, kind, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed path/body input is an invalid request, not a 422."""
    errors = "; ".join(
        f"{'.'.join(str(loc) for loc in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return _error_response(400, ErrorKind.INVALID_REQUEST, f"Invalid request: {errors}")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to prevent 500 leaking stack traces."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error_response(500, ErrorKind.INTERNAL, "Internal server error")


# --- Register routers ---
app.include_router(stores_router)


# --- Health check ---
@app.get("/health", tags=["system"], response_model=HealthResponse)
async def health_check():
    """Health check endpoint for monitoring."""
    return HealthResponse()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("delivery_control.main:app", host="0.0.0.0", port=settings.PORT)
