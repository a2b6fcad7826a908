from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.background.scheduler import shutdown_scheduler, start_scheduler
from app.core.config import get_settings
from app.core.db import init_database, test_database_connection
from app.core.exceptions import EnerjiOSError
from app.middleware.security import setup_security_middleware
from app.services.notification_events import register_notification_handlers

settings = get_settings()
logger = logging.getLogger(__name__)

db_initialized = False
db_error: str | None = None


async def initialize_database() -> None:
    global db_initialized, db_error
    try:
        print("[LIFESPAN] Testing database connection...")
        if not await test_database_connection():
            db_error = "Database connection failed"
            print(f"[LIFESPAN] ERROR: {db_error}")
            return
        print("[LIFESPAN] Database connection successful")

        print("[LIFESPAN] Initializing database tables...")
        await asyncio.wait_for(init_database(), timeout=30.0)
        db_initialized = True
        db_error = None
        print("[LIFESPAN] Database initialization complete")
    except asyncio.TimeoutError:
        db_error = "Database initialization timed out after 30s"
        print(f"[LIFESPAN] ERROR: {db_error}")
    except Exception as e:
        db_error = str(e)
        print(f"[LIFESPAN] ERROR initializing database: {e}")


@asynccontextmanager
async def lifespan(_: FastAPI):
    print("[LIFESPAN] Starting application initialization...")
    await initialize_database()

    register_notification_handlers()
    print("[LIFESPAN] Notification handlers registered")

    if settings.enable_scheduler:
        try:
            start_scheduler()
            print("[LIFESPAN] Scheduler started")
        except Exception as e:
            print(f"[LIFESPAN] WARNING: Error starting scheduler: {e}")

    print("[LIFESPAN] Application startup complete - ready to accept requests")
    yield

    print("[LIFESPAN] Shutting down...")
    shutdown_scheduler()
    print("[LIFESPAN] Shutdown complete")


app = FastAPI(
    title=settings.project_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
)
setup_security_middleware(app)


@app.exception_handler(EnerjiOSError)
async def enerjios_error_handler(request: Request, exc: EnerjiOSError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind} ({exc.message})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "An unexpected error occurred", "details": {}},
    )


app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint - responds immediately, reports database status."""
    return {
        "status": "ok",
        "service": "EnerjiOS API",
        "database_ready": db_initialized,
        "database_error": db_error,
    }


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict:
    """Readiness check - only returns ok when database is ready."""
    if not db_initialized:
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "database_ready": False, "error": db_error},
        )
    return {"status": "ready", "database_ready": True}
