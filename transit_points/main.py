"""
Transit Points - FastAPI Backend
Ordered geo-points of route traversals and stops
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from contextlib import asynccontextmanager
import logging
import time

from transit_points.config import get_settings
from transit_points.database import init_db, close_db, health_check as db_health_check
from transit_points.exceptions import ValidationError, PersistenceError
from transit_points.logging_config import setup_logging
from transit_points.routers import traversal_points, stop_points
from transit_points.utils.metrics import get_metrics, get_content_type, record_http_request

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    setup_logging(settings)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"CORS Origins: {settings.cors_origins_list}")

    if settings.create_tables:
        await init_db()

    yield

    await close_db()
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    description="Ordered geo-points of route traversals and stops",
    version=settings.app_version,
    lifespan=lifespan
)

# CORS middleware - MUST be added before exception handlers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Record request count and duration per route template"""
    start_time = time.time()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = route.path if route is not None else "unmatched"
    record_http_request(request.method, endpoint, response.status_code, time.time() - start_time)
    return response


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Caller input rejected by the point store"""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    """Database failure surfaced by the point store"""
    logger.error(f"Persistence error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Database error during {exc.operation}"}
    )


# Global exception handler to ensure proper error responses
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and return proper JSON response"""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"}
    )

# Include routers
app.include_router(traversal_points, prefix="/api/traversal-points", tags=["Traversal Points"])
app.include_router(stop_points, prefix="/api/stop-points", tags=["Stop Points"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    db = await db_health_check()
    return JSONResponse(
        status_code=200 if db['healthy'] else 503,
        content={
            "status": "healthy" if db['healthy'] else "degraded",
            "version": settings.app_version,
            "database": db
        }
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(
        content=get_metrics(),
        media_type=get_content_type()
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "transit_points.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
