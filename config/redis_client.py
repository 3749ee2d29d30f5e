import redis.asyncio as aioredis
from redis.asyncio import Redis
from typing import Optional
import logging

from config.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper for the variant cache"""
    
    def __init__(self):
        self.cache_client: Optional[Redis] = None
        
    async def connect(self):
        """Initialize Redis connection"""
        try:
            self.cache_client = await aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=10
            )
            
            await self.cache_client.ping()
            
            logger.info("✅ Redis connection initialized")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            raise
    
    async def disconnect(self):
        """Close Redis connection"""
        if self.cache_client:
            await self.cache_client.close()
            self.cache_client = None
        logger.info("🔌 Redis connection closed")
    
    async def ping(self) -> bool:
        """Check whether the cache connection is alive"""
        if not self.cache_client:
            return False
        try:
            return bool(await self.cache_client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False


# Global Redis client instance
redis_client = RedisClient()
