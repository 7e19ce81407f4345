import logging

import redis

from taskdesk.config import settings

logger = logging.getLogger(__name__)

# shared by the rate limiter and SessionClock; both treat errors as "allow"
redis_client = redis.Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    socket_connect_timeout=settings.redis_timeout_seconds,
    socket_timeout=settings.redis_timeout_seconds,
)

def redis_ping() -> bool:
    try:
        return bool(redis_client.ping())
    except redis.RedisError as e:
        logger.debug("redis ping failed: %s", e.__class__.__name__)
        return False
