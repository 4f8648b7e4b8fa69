import logging
from typing import Dict, Iterable, Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select

from marketplace.core.exception_utils import handle_exceptions
from marketplace.core.exceptions import InternalServerError
from marketplace.models.ad_model import Ad

logger = logging.getLogger(__name__)


class AdRepository:
    """Read access to listings owned by the listings service."""

    def __init__(self):
        self.model = Ad
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[Ad]:
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(
        default_exception=InternalServerError,
        message="An unexpected database error occurred.",
    )
    async def get_many_by_ids(self, db: AsyncSession, *, ids: Iterable[int]) -> Dict[int, Ad]:
        ids = set(ids)
        if not ids:
            return {}
        statement = select(self.model).where(self.model.id.in_(ids))
        result = await db.execute(statement)
        return {ad.id: ad for ad in result.scalars().all()}


ad_repository = AdRepository()
