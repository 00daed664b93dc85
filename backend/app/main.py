"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 8000

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.health import HealthStatus, run_health_check
from backend.app.core.cache import close_redis
from backend.app.core.database import close_db, init_db

# ── API routers ──
from backend.app.api.deps import close_providers
from backend.app.api.v1.risk import router as risk_router
from backend.app.api.v1.responders import router as responders_router
from backend.app.api.v1.emergency import router as emergency_router
from backend.app.api.v1.chat import router as chat_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    if settings.DATABASE_AUTO_CREATE:
        await init_db()
    yield
    # Shutdown: close connections
    logger.info("Shutting down %s", settings.APP_NAME)
    await close_providers()
    await close_redis()
    await close_db()


# ── Create application ──

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Location-based disaster risk backend. "
        "Combines live weather, air quality, USGS seismic activity and "
        "optional news risk into a 0–10 risk score with a per-signal "
        "breakdown, locates the nearest hospitals, police and fire "
        "stations via OpenStreetMap, records SOS reports and risk "
        "history, and proxies a disaster-aware chat assistant."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=not settings.CORS_ALLOW_ALL,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ── Error handlers ──
register_error_handlers(app)

# ── Register routers ──
app.include_router(risk_router)
app.include_router(responders_router)
app.include_router(emergency_router)
app.include_router(chat_router)


# ── Root & health endpoints ──

@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "modules": [
            "risk-aggregation",
            "live-risk-assessment",
            "responder-locator",
            "emergency-reports",
            "risk-history",
            "ai-chat",
        ],
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Deep health probe over every subsystem."""
    report = await run_health_check()
    return report.to_dict()


@app.get("/health/live", tags=["health"])
async def liveness():
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness():
    """Readiness probe: 503 while the record store is unreachable."""
    report = await run_health_check()
    if report.status == HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()
