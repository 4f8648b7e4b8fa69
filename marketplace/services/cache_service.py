import json
import logging
from typing import Any, Optional, Type, TypeVar

from dateutil.parser import isoparse
from sqlmodel import SQLModel

from marketplace.core.config import settings
from marketplace.db.redis_conn import redis_client

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class CacheKeys:
    """Every cache key the API writes, in one place."""

    @staticmethod
    def ad_rating(ad_id: int) -> str:
        return f"rating:ad:{ad_id}"

    @staticmethod
    def follow_counts(user_id: int) -> str:
        return f"follow_counts:user:{user_id}"

    @staticmethod
    def model(model_type: Type[SQLModel], obj_id: Any) -> str:
        return f"{model_type.__name__.lower()}:{obj_id}"


class CacheService:
    """
    Read-through cache on Redis for aggregates and single rows.

    Every failure is logged and treated as a miss; the database stays the
    source of truth.
    """

    def __init__(self, client=None, ttl: Optional[int] = None):
        self.client = client or redis_client
        self.ttl = ttl or settings.CACHE_TTL

    @property
    def enabled(self) -> bool:
        return settings.CACHE_ENABLED

    def _coerce_types(self, data: dict, model_type: Type[ModelType]) -> dict:
        """Parse ISO strings back into datetimes for datetime-typed fields."""
        for field_name, field_info in model_type.model_fields.items():
            if field_name in data and isinstance(data[field_name], str):
                if "datetime" in str(field_info.annotation):
                    try:
                        data[field_name] = isoparse(data[field_name])
                    except (ValueError, TypeError):
                        logger.warning(
                            f"Could not parse date string '{data[field_name]}' for field '{field_name}'."
                        )
        return data

    async def get_json(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            cached = await self.client.get(key)
            return json.loads(cached) if cached else None
        except Exception:
            logger.warning(f"Cache lookup failed for key: {key}", exc_info=True)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if not self.enabled:
            return
        try:
            await self.client.set(
                key, json.dumps(value, default=str), ex=ttl or self.ttl
            )
        except Exception:
            logger.warning(f"Failed to cache value with key: {key}", exc_info=True)

    async def get_model(
        self, model_type: Type[ModelType], obj_id: Any
    ) -> Optional[ModelType]:
        raw = await self.get_json(CacheKeys.model(model_type, obj_id))
        if raw is None:
            return None
        try:
            return model_type.model_validate(self._coerce_types(raw, model_type))
        except Exception:
            logger.warning(
                f"Discarding unreadable cached {model_type.__name__} {obj_id}",
                exc_info=True,
            )
            return None

    async def set_model(self, obj: SQLModel) -> None:
        if getattr(obj, "id", None) is None:
            logger.warning(
                f"Attempted to cache an object of type {type(obj).__name__} without an ID."
            )
            return
        if not self.enabled:
            return
        key = CacheKeys.model(type(obj), obj.id)
        try:
            await self.client.set(key, obj.model_dump_json(), ex=self.ttl)
        except Exception:
            logger.warning(f"Failed to cache object with key: {key}", exc_info=True)

    async def invalidate(self, *keys: str) -> None:
        if not self.enabled or not keys:
            return
        try:
            await self.client.delete(*keys)
        except Exception:
            logger.warning(f"Failed to invalidate cache keys: {keys}", exc_info=True)


# Create a single, reusable instance for the rest of the application
cache_service = CacheService()
