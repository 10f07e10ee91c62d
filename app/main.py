"""CAMPO — FastAPI Application Entry Point.

Campaign Automation, Monitoring & Performance Optimizer.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.database import init_db, test_connection, db_url, _mask_url
from app.scheduler.jobs import start_scheduler, stop_scheduler
from app.api.monitor_routes import router as monitor_router
from app.api.report_routes import router as report_router
from app.api.campaign_routes import router as campaign_router
from app.core.logging import get_logger

logger = get_logger("main")

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 CAMPO starting up...")
    logger.info(f"🌍 Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    db_ok = test_connection()
    if db_ok:
        try:
            init_db()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected — endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("CAMPO shut down")


app = FastAPI(
    title="CAMPO",
    description="Campaign Automation, Monitoring & Performance Optimizer — poll ad platform metrics, apply rule-based optimizations, raise alerts and keep an audit trail.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(monitor_router)
app.include_router(report_router)
app.include_router(campaign_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "campo",
        "version": "1.0.0",
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Debug endpoint — check database connectivity."""
    error = None
    connected = False
    try:
        connected = test_connection()
    except Exception as e:
        error = str(e)

    backend = "postgresql" if db_url.startswith("postgresql") else "sqlite"
    return {
        "connected": connected,
        "backend": backend,
        "url": _mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
        "error": error,
    }
