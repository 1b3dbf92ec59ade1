from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST, REGISTRY

from output_tracker.core.db.mongodb import connect_to_mongo, close_mongo_connection
from output_tracker.core.db.mongo_store import MongoProductionStore
from output_tracker.api.v1.api import api_router
from output_tracker.core.setting import config
from output_tracker.modules.production.production_service import ProductionService
from output_tracker.modules.realtime.change_poller import ChangePoller
from output_tracker.shared.keyed_lock import KeyedLock

# Import Prometheus middleware
from output_tracker.core.monitoring.prometheus_middleware import PrometheusMiddleware


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    client = await connect_to_mongo()
    app.state.store = MongoProductionStore(client)
    app.state.target_locks = KeyedLock()
    app.state.poller = ChangePoller(
        ProductionService(app.state.store).get_current_grid,
        interval_seconds=config.POLL_INTERVAL_SECONDS,
    )
    app.state.poller.start()
    yield
    # Shutdown
    app.state.poller.shutdown()
    await close_mongo_connection()

app = FastAPI(
    title=config.PROJECT_NAME,
    version="0.1.0",
    openapi_url=f"{config.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# ============================================================================
# CORS Middleware
# ============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ============================================================================
# Prometheus Middleware (Add BEFORE routes)
# ============================================================================
app.middleware("http")(PrometheusMiddleware())

# ============================================================================
# Metrics Endpoint (Add BEFORE api_router to avoid conflicts)
# ============================================================================
@app.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint
    This endpoint is scraped by Prometheus to collect metrics
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST
    )

# ============================================================================
# Health Check Endpoint
# ============================================================================
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring
    """
    poller = getattr(app.state, "poller", None)
    return {
        "status": "healthy",
        "service": config.PROJECT_NAME,
        "version": "0.1.0",
        "poller": {
            "running": bool(poller and poller.running),
            "state": poller.state.value if poller else None,
            "subscribers": poller.subscriber_count if poller else 0,
        },
    }

# ============================================================================
# API Router
# ============================================================================
app.include_router(api_router, prefix=config.API_V1_STR)

# ============================================================================
# Root Endpoint
# ============================================================================
@app.get("/")
async def root():
    return {
        "message": "Workcenter Output Tracker API",
        "docs": "/docs",
        "metrics": "/metrics",
        "health": "/health",
        "realtime": f"{config.API_V1_STR}/ws/production",
    }
