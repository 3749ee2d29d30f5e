"""
Test Variant Cache

Tests for the Redis-backed variant cache: lookups by status, expiry,
collaborator failures, pipeline writes and hit/miss statistics.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from content.variant_cache import VariantCacheManager, VariantCacheError
from models.schemas import CacheEntryStatus, VariantKey, VariantType


@pytest.fixture
def mock_redis():
    """Async Redis client mock."""
    redis = MagicMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.incr = AsyncMock(return_value=1)
    redis.delete = AsyncMock(return_value=2)
    redis.keys = AsyncMock(return_value=[])
    return redis


@pytest.fixture
def cache_manager(mock_redis):
    """Cache manager bound to the mock client."""
    return VariantCacheManager(redis=mock_redis)


@pytest.fixture
def enrichment_key():
    return VariantKey(content_id="block_42", variant_type=VariantType.ENRICHMENT)


def _stored_document(mock_redis):
    """The JSON document passed to the last setex call."""
    args = mock_redis.setex.call_args.args
    return args[0], args[1], args[2]


# ===== Lookup =====

@pytest.mark.asyncio
async def test_lookup_absent(cache_manager, mock_redis, enrichment_key):
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.ABSENT
    assert entry.payload is None
    mock_redis.get.assert_awaited_once_with("content:variant:block_42:enrichment")
    mock_redis.incr.assert_awaited_once_with("content:variant_stats:misses")


@pytest.mark.asyncio
async def test_store_then_lookup_ready(cache_manager, mock_redis, enrichment_key):
    payload = {"type": "multiple-choice", "question": "Harder fractions"}
    await cache_manager.store_variant(enrichment_key, payload, metadata={"generationTimeMs": 1800})
    
    cache_key, ttl, document = _stored_document(mock_redis)
    assert cache_key == "content:variant:block_42:enrichment"
    assert ttl == 90 * 24 * 60 * 60
    
    mock_redis.get.return_value = document
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.READY
    assert entry.payload == payload
    assert entry.metadata["generationTimeMs"] == 1800
    assert entry.metadata["version"] == VariantCacheManager.CACHE_VERSION
    mock_redis.incr.assert_awaited_with("content:variant_stats:hits")


@pytest.mark.asyncio
async def test_expired_entry_reads_absent(cache_manager, mock_redis, enrichment_key):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    mock_redis.get.return_value = json.dumps({
        "status": "ready",
        "content": {"question": "stale"},
        "generated_at": (past - timedelta(days=90)).isoformat(),
        "expires_at": past.isoformat(),
    })
    
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.ABSENT


@pytest.mark.asyncio
async def test_expiry_without_offset_is_read_as_utc(cache_manager, mock_redis, enrichment_key):
    """Timestamps written without a timezone offset still expire"""
    mock_redis.get.return_value = json.dumps({
        "status": "ready",
        "content": {"question": "stale"},
        "expires_at": "2020-01-01T00:00:00",
    })
    
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.ABSENT


@pytest.mark.asyncio
async def test_unexpired_entry_without_offset_is_ready(cache_manager, mock_redis, enrichment_key):
    future = datetime.now(timezone.utc) + timedelta(days=30)
    mock_redis.get.return_value = json.dumps({
        "status": "ready",
        "content": {"question": "fresh"},
        "expires_at": future.replace(tzinfo=None).isoformat(),
    })
    
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.READY
    assert entry.payload == {"question": "fresh"}


@pytest.mark.asyncio
async def test_pending_and_failed_entries(cache_manager, mock_redis, enrichment_key):
    await cache_manager.mark_pending(enrichment_key)
    mock_redis.get.return_value = _stored_document(mock_redis)[2]
    assert (await cache_manager.lookup(enrichment_key)).status == CacheEntryStatus.PENDING
    
    await cache_manager.mark_failed(enrichment_key, "LLM quota exceeded")
    mock_redis.get.return_value = _stored_document(mock_redis)[2]
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.ERROR
    assert entry.error == "LLM quota exceeded"
    assert entry.payload is None


@pytest.mark.asyncio
async def test_lookup_connection_failure_raises(cache_manager, mock_redis, enrichment_key):
    """Collaborator failures surface instead of reading as a miss"""
    mock_redis.get.side_effect = ConnectionError("redis down")
    
    with pytest.raises(VariantCacheError):
        await cache_manager.lookup(enrichment_key)


@pytest.mark.asyncio
async def test_lookup_corrupt_entry_raises(cache_manager, mock_redis, enrichment_key):
    mock_redis.get.return_value = "{not json"
    
    with pytest.raises(VariantCacheError):
        await cache_manager.lookup(enrichment_key)


@pytest.mark.asyncio
async def test_stat_counter_failure_does_not_fail_lookup(cache_manager, mock_redis, enrichment_key):
    mock_redis.incr.side_effect = ConnectionError("counter unavailable")
    
    entry = await cache_manager.lookup(enrichment_key)
    
    assert entry.status == CacheEntryStatus.ABSENT


@pytest.mark.asyncio
async def test_write_failure_raises(cache_manager, mock_redis, enrichment_key):
    mock_redis.setex.side_effect = ConnectionError("redis down")
    
    with pytest.raises(VariantCacheError):
        await cache_manager.store_variant(enrichment_key, {"question": "q"})


@pytest.mark.asyncio
@pytest.mark.parametrize("ttl_days", [0, -3])
async def test_store_rejects_non_positive_ttl(cache_manager, mock_redis, enrichment_key, ttl_days):
    with pytest.raises(ValueError):
        await cache_manager.store_variant(enrichment_key, {"question": "q"}, ttl_days=ttl_days)
    
    mock_redis.setex.assert_not_awaited()


# ===== Maintenance =====

@pytest.mark.asyncio
async def test_invalidate_deletes_every_variant_type(cache_manager, mock_redis):
    deleted = await cache_manager.invalidate("block_42")
    
    assert deleted == 2
    mock_redis.delete.assert_awaited_once_with(
        "content:variant:block_42:scaffolding",
        "content:variant:block_42:original",
        "content:variant:block_42:enrichment",
    )


@pytest.mark.asyncio
async def test_cache_stats(cache_manager, mock_redis):
    mock_redis.get.side_effect = ["3", "1"]
    mock_redis.keys.side_effect = [
        ["content:variant:a:scaffolding"],
        [],
        ["content:variant:a:enrichment", "content:variant:b:enrichment"],
    ]
    
    stats = await cache_manager.get_cache_stats()
    
    assert stats["cache_hits"] == 3
    assert stats["cache_misses"] == 1
    assert stats["hit_rate_percent"] == 75.0
    assert stats["total_cached"] == 3
    assert stats["by_type"] == {"scaffolding": 1, "original": 0, "enrichment": 2}
