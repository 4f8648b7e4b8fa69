from redis import asyncio as aioredis

from marketplace.core.config import settings

# Connections are opened lazily on first command.
redis_client: aioredis.Redis = aioredis.from_url(
    settings.REDIS_URL, encoding="utf-8", decode_responses=True
)
