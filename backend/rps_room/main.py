"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rps_room import __version__
from rps_room.api.api import api_router
from rps_room.core.config import settings
from rps_room.core.exceptions import AppException
from rps_room.services import build_services
from rps_room.services.log_manager import init_game_logging
from rps_room.storage.redis_backend import RedisStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown logic."""
    # ── Startup ──
    await _startup(app)
    yield
    # ── Shutdown ──
    await _shutdown(app)


app = FastAPI(
    title="Paper Scissors Stone Rooms API",
    description="Chat rooms with round-elimination Paper Scissors Stone games",
    version=__version__,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# Browsers refuse credentials with a wildcard origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin", "X-Identity", "X-Name"],
)

app.include_router(api_router)


# ── Global Exception Handlers ──

@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Convert AppException subclasses to structured JSON responses."""
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler to prevent stack trace leaking in production."""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred." if not settings.DEBUG else str(exc),
            "details": {},
        },
    )


async def _startup(app: FastAPI):
    """Wire services, attach game logging and resume active games."""
    logger.info("Paper Scissors Stone Rooms API starting up...")

    # Tests may install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    services = app.state.services

    init_game_logging()
    logger.info("Game logging initialized")

    if isinstance(services.store, RedisStore):
        services.store.start_listener()

    resumed = services.scheduler.resume_all()
    logger.info(f"Game scheduler ready ({resumed} game(s) resumed)")


async def _shutdown(app: FastAPI):
    """Cancel game tasks and release the store."""
    logger.info("Paper Scissors Stone Rooms API shutting down...")
    services = getattr(app.state, "services", None)
    if services is None:
        return
    await services.scheduler.shutdown()
    services.store.close()
    logger.info("Shutdown complete")


@app.get("/")
def root():
    """Root endpoint - health check."""
    return {
        "status": "ok",
        "message": "Paper Scissors Stone Rooms API is running",
        "version": __version__,
    }


@app.get("/health")
def health_check(request: Request):
    """Health check endpoint, including the shared store."""
    services = getattr(request.app.state, "services", None)
    store_ok = services is not None and services.store.ping()
    return {"status": "healthy" if store_ok else "degraded", "store": store_ok}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rps_room.main:app", host="0.0.0.0", port=8000, reload=True)
