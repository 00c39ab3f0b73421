# app/main.py
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os
import time
import uuid
from typing import Callable

from .config import settings
from .api.v1.router import api_router
from .database import init_db, close_db, check_db_health
from .exceptions import (
    StreamingError,
    global_exception_handler,
    http_exception_handler,
    streaming_exception_handler,
)

# ============================================================
# Setup Logging
# ============================================================
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================
# Startup/Shutdown Events
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan with startup/shutdown
    """
    # ✅ STARTUP
    logger.info(f"🚀 Starting {settings.APP_NAME}...")
    logger.info(f"🔒 Debug mode: {settings.DEBUG}")

    init_db()

    # The video root is fixed for the lifetime of the process
    os.makedirs(settings.VIDEO_DIR, exist_ok=True)
    logger.info(f"📁 Video directory ready: {settings.VIDEO_DIR}")

    logger.info("✅ Application startup complete!")

    yield  # Application runs

    # ❌ SHUTDOWN
    logger.info(f"🛑 Shutting down {settings.APP_NAME}...")
    close_db()
    logger.info("👋 Goodbye!")


# ============================================================
# Create FastAPI Application
# ============================================================

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Movie streaming API: byte-range video delivery and watch tracking",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

# ============================================================
# Middleware Configuration
# ============================================================

# 1️⃣ CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "X-Stream-Session"],
    max_age=3600,
)

# 2️⃣ Request Logging Middleware
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    """Log all requests with timing"""
    start_time = time.time()

    logger.info(f"➡️ {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"⬅️ {request.method} {request.url.path} "
        f"[{response.status_code}] {duration:.3f}s"
    )

    response.headers["X-Process-Time"] = str(duration)
    return response

# 3️⃣ Request ID Middleware (outermost, so the id exists for everything below)
@app.middleware("http")
async def add_request_id(request: Request, call_next: Callable):
    """Add unique request ID for tracing"""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

# ============================================================
# API Routers
# ============================================================

app.include_router(api_router, prefix="/api/v1")

# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root() -> dict:
    """API information endpoint"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "health": "/health"
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Fast health check endpoint for load balancers
    Returns immediately without checking dependencies
    """
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health/detailed", tags=["Health"])
def health_check_detailed() -> dict:
    """
    Detailed health check endpoint
    Checks database connectivity and the video directory
    """
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }

    db_healthy = check_db_health()
    health_status["database"] = "connected" if db_healthy else "disconnected"
    health_status["video_dir"] = "ready" if os.path.isdir(settings.VIDEO_DIR) else "missing"

    if not db_healthy or health_status["video_dir"] == "missing":
        health_status["status"] = "degraded"

    return health_status

# ============================================================
# Exception Handlers
# ============================================================

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StreamingError, streaming_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# ============================================================
# Run Application
# ============================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
