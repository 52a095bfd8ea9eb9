"""
Main FastAPI application for Campus Events Service.
Handles application startup, middleware, and routing.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time

from campus_events.core.config import config
from campus_events.core.exceptions import CampusEventsError
from campus_events.db.database import db_manager
from campus_events.db.redis_client import redis_manager
from campus_events.api.v1.router import router as api_router, SERVICE_VERSION
from campus_events.services.event_publisher import RedisEventPublisher, notification_emitter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting Campus Events Service...")

    try:
        await db_manager.initialize()
        logger.info("Database manager initialized")

        db_manager.create_tables()

        await redis_manager.initialize()
        logger.info("Redis manager initialized")

        channel_prefix = await config.get_notification_channel_prefix()
        notification_emitter.add_publisher(RedisEventPublisher(redis_manager, channel_prefix))
        logger.info(f"Publishing notifications on {channel_prefix}:*")

        logger.info("Campus Events Service started successfully")

    except Exception as e:
        logger.error(f"Failed to start Campus Events Service: {e}")
        raise

    yield

    logger.info("Shutting down Campus Events Service...")

    try:
        db_manager.close()
        await redis_manager.close()
        await config.close()
        logger.info("Campus Events Service shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application
app = FastAPI(
    title="Campus Events Service",
    description="Event approval workflow with venue and resource allocation",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add request processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Domain error handler
@app.exception_handler(CampusEventsError)
async def campus_events_exception_handler(request: Request, exc: CampusEventsError):
    """Map service errors to their HTTP status."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{type(exc).__name__}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "error_message": exc.message,
            "details": exc.details,
            "timestamp": datetime.now().isoformat()
        }
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error_code": "INTERNAL_SERVER_ERROR",
            "error_message": "An internal server error occurred",
            "details": {"exception": str(exc)},
            "timestamp": datetime.now().isoformat()
        }
    )


# HTTP exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP exception handler for FastAPI HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": "HTTP_ERROR",
            "error_message": exc.detail,
            "status_code": exc.status_code,
            "timestamp": datetime.now().isoformat()
        },
        headers=getattr(exc, "headers", None)
    )


# Include API router
app.include_router(api_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with service information."""
    return {
        "service": "Campus Events Service",
        "version": SERVICE_VERSION,
        "status": "running",
        "endpoints": {
            "api": "/api/v1",
            "health": "/api/v1/health",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }


# Health check endpoint (simple)
@app.get("/health")
async def simple_health_check():
    """Simple health check endpoint."""
    return {"status": "healthy", "service": "campus-events"}
