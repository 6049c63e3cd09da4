# booking_engine/redis_client.py

from functools import lru_cache
from typing import Optional

import redis

from .config import get_settings


@lru_cache
def get_redis_client() -> Optional[redis.Redis]:
    """Shared Redis client, or None when BOOKING_REDIS_URL is not set."""
    url = get_settings().redis_url
    if not url:
        return None
    return redis.from_url(url, decode_responses=True)
