"""
FastAPI application for the ChronoFlux engine
"""

import json
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chronoflux import __version__
from chronoflux.api.debug import router as debug_router
from chronoflux.api.deps import get_store, status_for
from chronoflux.api.games import router as games_router
from chronoflux.api.scenarios import router as scenarios_router
from chronoflux.api.settings import router as settings_router
from chronoflux.config import settings
from chronoflux.engine.initializer import GameInitializer
from chronoflux.errors import ChronoFluxError
from chronoflux.utils.logger import LOG_LEVELS, get_logger, setup_logging

log_level = settings.log_level.upper() if settings.log_level.upper() in LOG_LEVELS else "INFO"

setup_logging(
    level=log_level,
    log_file=settings.log_file or None,
    enable_colors=True,
    include_timestamp=True,
)

logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="ChronoFlux Engine",
    description="Resolve free-text player actions in alternate-history games",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

logger.info("FastAPI application initialized")
logger.info(f"Log level: {log_level}")
logger.info(f"Default AI provider: {settings.ai_provider}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next: Callable) -> Response:
    """Log every HTTP request with a short correlation id"""

    request_id = str(uuid.uuid4())[:8]
    start_time = time.time()

    request_body = None
    if request.method in ["POST", "PUT", "PATCH"]:
        body = await request.body()
        if body:
            try:
                request_body = json.loads(body.decode())
            except (json.JSONDecodeError, UnicodeDecodeError):
                request_body = {"body_size": len(body)}
            if isinstance(request_body, dict) and "openrouter_api_key" in request_body:
                request_body = {**request_body, "openrouter_api_key": "***"}

    logger.info(
        f"[API] Request started: {request.method} {request.url.path}",
        extra={
            "component": "API",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
            "request_body": request_body,
        },
    )
    request.state.request_id = request_id

    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"[API] Request failed: {request.method} {request.url.path} -> ERROR ({duration_ms:.2f}ms): {e}",
            extra={
                "component": "API",
                "request_id": request_id,
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[API] Request completed: {request.method} {request.url.path} -> {response.status_code} ({duration_ms:.2f}ms)",
        extra={
            "component": "API",
            "request_id": request_id,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


@app.exception_handler(ChronoFluxError)
async def chronoflux_error_handler(request: Request, exc: ChronoFluxError):
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"[API] {request.method} {request.url.path} -> {status_code}: {exc.message}",
        extra={"component": "API", "error_code": exc.code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


# Include routers
app.include_router(scenarios_router, prefix="/scenarios", tags=["scenarios"])
app.include_router(games_router, prefix="/games", tags=["games"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])
app.include_router(debug_router, prefix="/debug", tags=["debug"])


@app.on_event("startup")
async def startup_event():
    """Open the database and seed the built-in scenarios"""
    logger.info("=" * 60)
    logger.info("APPLICATION STARTUP")
    logger.info("=" * 60)

    store = app.dependency_overrides.get(get_store, get_store)()
    logger.info(f"✓ Database initialized: {settings.database_path}")
    logger.info(GameInitializer(store).seed_scenarios())

    logger.info("Configuration:")
    logger.info(f"  - Provider: {settings.ai_provider}")
    logger.info(f"  - Database: {settings.database_path}")
    logger.info(f"  - Debug: {settings.debug}")
    logger.info("=" * 60)


@app.get("/")
async def root():
    """Root endpoint"""
    logger.debug("Root endpoint called")
    return {
        "message": "ChronoFlux Engine",
        "version": __version__,
        "status": "running",
        "log_level": log_level,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    logger.debug("Health check endpoint called")
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    logger.info(f"Debug mode: {settings.debug}")
    uvicorn.run(
        "chronoflux.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=log_level.lower(),
    )
