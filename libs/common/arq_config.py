"""ARQ (Async Redis Queue) configuration utilities."""

from urllib.parse import urlparse

from arq.connections import RedisSettings
from libs.common.config import get_settings


def get_redis_settings() -> RedisSettings:
    """Parse REDIS_URL into ARQ RedisSettings (``rediss://`` enables TLS)."""
    settings = get_settings()
    parsed = urlparse(settings.REDIS_URL)

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or "0"),
        username=parsed.username or None,
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
        conn_timeout=5,
        conn_retries=3,
    )
