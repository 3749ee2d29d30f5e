from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from config.settings import settings
from config.redis_client import redis_client
from api.health import router as health_router
from api.adaptive import router as adaptive_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events for FastAPI application"""
    # Startup
    logger.info("🚀 Starting Adaptive Policy Engine...")

    try:
        await redis_client.connect()
        logger.info("✅ Adaptive Policy Engine started successfully")
    except Exception as e:
        # Decision endpoints stay usable; variant lookups report errored
        logger.error(f"❌ Variant cache unavailable at startup: {e}")

    yield

    # Shutdown
    logger.info("⏳ Shutting down Adaptive Policy Engine...")

    try:
        await redis_client.disconnect()
        logger.info("✅ Adaptive Policy Engine shut down gracefully")
    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


# Initialize FastAPI app
app = FastAPI(
    title="Adaptive Mastery & Variant Policy Engine",
    description="Bayesian mastery tracking, content-variant policy and variant readiness polling",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(health_router)
app.include_router(adaptive_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Adaptive Mastery & Variant Policy Engine",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
