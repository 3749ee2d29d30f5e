"""Redis cache of generated content variants."""

import logging
import json
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from pydantic import ValidationError

from config.redis_client import redis_client
from config.settings import settings
from models.schemas import CacheEntryStatus, VariantCacheEntry, VariantKey, VariantType

logger = logging.getLogger(__name__)


class VariantCacheError(Exception):
    """The cache collaborator could not answer a lookup"""


class VariantCacheManager:
    """Read and write generated variants in Redis.

    The readiness waiter only calls `lookup`; the write methods belong to the
    generation pipeline that produces variants.
    """

    VARIANT_PREFIX = "content:variant"
    STATS_PREFIX = "content:variant_stats"
    CACHE_VERSION = "1.0.0"

    def __init__(self, redis=None):
        self.redis_wrapper = redis_client
        self.redis = redis  # Resolved on first use unless injected
        logger.info("VariantCacheManager initialized")

    async def _ensure_connected(self):
        """Ensure Redis client is connected and available."""
        if self.redis is None:
            if not self.redis_wrapper.cache_client:
                await self.redis_wrapper.connect()
            self.redis = self.redis_wrapper.cache_client

    async def lookup(self, key: VariantKey) -> VariantCacheEntry:
        """
        Observe the cached state of a variant.

        Args:
            key: Content id and variant type

        Returns:
            Entry with status absent, pending, ready or error. Expired
            entries read as absent.

        Raises:
            VariantCacheError: Redis is unreachable or the entry is corrupt
        """
        try:
            await self._ensure_connected()
            raw = await self.redis.get(self._generate_cache_key(key))
        except Exception as e:
            logger.error(f"Error reading variant {key} from cache: {e}")
            raise VariantCacheError(f"cache lookup failed for {key}: {e}") from e

        if raw is None:
            await self._increment_stat("misses")
            logger.debug(f"Cache MISS for variant: {key}")
            return VariantCacheEntry(key=key, status=CacheEntryStatus.ABSENT)

        entry = self._decode_entry(key, raw)

        expires_at = entry.expires_at
        if expires_at and expires_at.tzinfo is None:
            # Pipeline timestamps without an offset are UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        if expires_at and expires_at <= datetime.now(timezone.utc):
            await self._increment_stat("misses")
            logger.info(f"⚠️ Cache EXPIRED for variant: {key}")
            return VariantCacheEntry(key=key, status=CacheEntryStatus.ABSENT)

        if entry.is_ready:
            await self._increment_stat("hits")
            logger.info(f"Cache HIT for variant: {key}")

        return entry

    async def mark_pending(self, key: VariantKey, ttl_seconds: int = 3600) -> None:
        """Record that generation of a variant has started."""
        await self._write(key, {
            'status': CacheEntryStatus.PENDING.value,
            'content': None,
            'error': None,
            'metadata': {'version': self.CACHE_VERSION},
        }, ttl_seconds)
        logger.info(f"⏳ Variant generation pending: {key}")

    async def store_variant(
        self,
        key: VariantKey,
        payload: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
        ttl_days: Optional[int] = None
    ) -> None:
        """
        Store a generated variant.

        Args:
            key: Content id and variant type
            payload: The generated content block
            metadata: Optional generation metadata (duration, method)
            ttl_days: Days until expiry (default from settings)
        """
        if ttl_days is None:
            ttl_days = settings.VARIANT_CACHE_TTL_DAYS
        if ttl_days <= 0:
            raise ValueError(f"ttl_days must be positive, got {ttl_days}")
        now = datetime.now(timezone.utc)

        await self._write(key, {
            'status': CacheEntryStatus.READY.value,
            'content': payload,
            'error': None,
            'generated_at': now.isoformat(),
            'expires_at': (now + timedelta(days=ttl_days)).isoformat(),
            'metadata': {**(metadata or {}), 'version': self.CACHE_VERSION},
        }, ttl_days * 24 * 60 * 60)
        logger.info(f"💾 Cached {key.variant_type.value} variant for {key.content_id}")

    async def mark_failed(self, key: VariantKey, error: str, ttl_seconds: int = 3600) -> None:
        """Record that the generation pipeline failed for a variant."""
        await self._write(key, {
            'status': CacheEntryStatus.ERROR.value,
            'content': None,
            'error': error,
            'metadata': {'version': self.CACHE_VERSION},
        }, ttl_seconds)
        logger.warning(f"Variant generation failed for {key}: {error}")

    async def invalidate(self, content_id: str) -> int:
        """
        Drop all cached variants of one content item.

        Returns:
            Number of keys deleted
        """
        try:
            await self._ensure_connected()
            keys = [
                self._generate_cache_key(VariantKey(content_id=content_id, variant_type=variant_type))
                for variant_type in VariantType
            ]
            deleted = await self.redis.delete(*keys)
            logger.info(f"Invalidated {deleted} variant entries for content: {content_id}")
            return deleted
        except Exception as e:
            raise VariantCacheError(f"invalidate failed for {content_id}: {e}") from e

    async def get_cache_stats(self) -> Dict[str, Any]:
        """
        Get cache performance metrics.

        Returns:
            Dictionary with hit/miss counts and cached variants per type
        """
        try:
            await self._ensure_connected()

            hits = int(await self.redis.get(f"{self.STATS_PREFIX}:hits") or 0)
            misses = int(await self.redis.get(f"{self.STATS_PREFIX}:misses") or 0)
            total = hits + misses

            by_type = {}
            for variant_type in VariantType:
                keys = await self.redis.keys(f"{self.VARIANT_PREFIX}:*:{variant_type.value}")
                by_type[variant_type.value] = len(keys)

            return {
                'cache_hits': hits,
                'cache_misses': misses,
                'hit_rate_percent': round(hits / total * 100, 2) if total > 0 else 0,
                'total_cached': sum(by_type.values()),
                'by_type': by_type
            }

        except Exception as e:
            logger.error(f"Error getting variant cache stats: {str(e)}")
            return {
                'error': str(e),
                'cache_hits': 0,
                'cache_misses': 0,
                'hit_rate_percent': 0
            }

    async def _write(self, key: VariantKey, document: Dict[str, Any], ttl_seconds: int) -> None:
        try:
            await self._ensure_connected()
            await self.redis.setex(
                self._generate_cache_key(key),
                ttl_seconds,
                json.dumps(document)
            )
        except Exception as e:
            logger.error(f"Error writing variant {key} to cache: {e}")
            raise VariantCacheError(f"cache write failed for {key}: {e}") from e

    def _decode_entry(self, key: VariantKey, raw) -> VariantCacheEntry:
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        try:
            data = json.loads(raw)
            return VariantCacheEntry(
                key=key,
                status=CacheEntryStatus(data.get('status', CacheEntryStatus.READY.value)),
                payload=data.get('content'),
                error=data.get('error'),
                generated_at=data.get('generated_at'),
                expires_at=data.get('expires_at'),
                metadata=data.get('metadata') or {},
            )
        except (json.JSONDecodeError, ValueError, ValidationError) as e:
            logger.error(f"Corrupt cache entry for variant {key}: {e}")
            raise VariantCacheError(f"corrupt cache entry for {key}") from e

    def _generate_cache_key(self, key: VariantKey) -> str:
        """Generate Redis cache key."""
        return f"{self.VARIANT_PREFIX}:{key.content_id}:{key.variant_type.value}"

    async def _increment_stat(self, name: str):
        """Increment a hit/miss counter; counters never fail a lookup."""
        try:
            await self.redis.incr(f"{self.STATS_PREFIX}:{name}")
        except Exception as e:
            logger.debug(f"Could not update cache {name} counter: {e}")
