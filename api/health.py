from fastapi import APIRouter
from datetime import datetime, timezone

from models.schemas import HealthCheckResponse
from config.redis_client import redis_client

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Basic health check for the variant cache connection"""
    
    services = {}
    
    if await redis_client.ping():
        services["redis"] = "connected"
    else:
        services["redis"] = "disconnected"
    
    status = "ok" if all(s == "connected" for s in services.values()) else "degraded"
    
    return HealthCheckResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services
    )
