from redis.asyncio import Redis

# Global Redis client instance
redis_client: Redis | None = None


async def get_redis() -> Redis:
    """
    Get the Redis client instance.

    Returns:
        Redis client instance

    Raises:
        RuntimeError: If Redis client is not initialized
    """
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized")
    return redis_client


async def cache_get_int(key: str) -> int | None:
    """Read an integer counter, or None when missing or Redis is unavailable."""
    if redis_client is None:
        return None
    value = await redis_client.get(key)
    return int(value) if value is not None else None


async def cache_set_int(key: str, value: int, ttl_seconds: int) -> None:
    if redis_client is None:
        return
    await redis_client.setex(key, ttl_seconds, str(value))


async def cache_delete(*keys: str) -> None:
    if redis_client is None or not keys:
        return
    await redis_client.delete(*keys)
