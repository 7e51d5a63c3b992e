"""
Redis caching utilities for catalog listings
Reduces database load for the paginated staff/service listings
"""
import json
import logging
from typing import Any, Optional

import redis

from .config import (
    CACHE_ENABLED,
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_URL,
)

logger = logging.getLogger(__name__)


def create_redis_client() -> redis.Redis:
    """
    Create a Redis client from REDIS_URL, or from the individual REDIS_* settings
    """
    if REDIS_URL:
        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")
        client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
    else:
        client = redis.Redis(
            host=REDIS_HOST,
            port=REDIS_PORT,
            password=REDIS_PASSWORD,
            db=REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    client.ping()
    logger.info("Redis connected successfully")
    return client


class Cache:
    """Redis cache wrapper with automatic serialization.

    Fails open: when Redis is unavailable reads miss and writes are skipped.
    """

    def __init__(self, client: Optional[Any] = None, enabled: bool = CACHE_ENABLED):
        self.redis_client = client
        self.enabled = enabled

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = create_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=f"{prefix}*"))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE prefix: {prefix} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete prefix error for {prefix}: {e}")
            return 0


class CatalogCache:
    """
    Cache view scoped to one listing namespace ("staff", "services").

    Keys are derived from the query (search + page + page size), and the
    whole namespace is invalidated at once whenever its records change.
    """

    def __init__(self, cache: Cache, namespace: str, ttl: int):
        self.cache = cache
        self.namespace = namespace
        self.ttl = ttl

    @property
    def prefix(self) -> str:
        return f"catalog:{self.namespace}:"

    def key_for(self, search: Optional[str], page: int, page_size: int) -> str:
        search_part = (search or "").strip().lower()
        return f"{self.prefix}{search_part}:{page}:{page_size}"

    def get(self, search: Optional[str], page: int, page_size: int) -> Optional[dict]:
        return self.cache.get(self.key_for(search, page, page_size))

    def set(self, search: Optional[str], page: int, page_size: int, value: dict) -> bool:
        return self.cache.set(self.key_for(search, page, page_size), value, self.ttl)

    def invalidate(self) -> int:
        deleted = self.cache.delete_prefix(self.prefix)
        logger.info(f"🧹 Invalidated {self.namespace} listing cache ({deleted} keys)")
        return deleted
