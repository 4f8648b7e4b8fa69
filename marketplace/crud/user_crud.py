import logging
from typing import Dict, Iterable, Optional

from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select, func

from marketplace.core.exception_utils import handle_exceptions
from marketplace.core.exceptions import InternalServerError
from marketplace.models.user_model import User

logger = logging.getLogger(__name__)

DB_ERROR_MESSAGE = "An unexpected database error occurred."


class UserRepository:
    """Read access to accounts owned by the account service."""

    def __init__(self):
        self.model = User
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get(self, db: AsyncSession, *, obj_id: int) -> Optional[User]:
        """Retrieves a user by their ID."""
        statement = select(self.model).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def get_many_by_ids(
        self, db: AsyncSession, *, ids: Iterable[int]
    ) -> Dict[int, User]:
        """Fetch several users at once, keyed by id."""
        ids = set(ids)
        if not ids:
            return {}
        statement = select(self.model).where(self.model.id.in_(ids))
        result = await db.execute(statement)
        return {user.id: user for user in result.scalars().all()}

    @handle_exceptions(default_exception=InternalServerError, message=DB_ERROR_MESSAGE)
    async def exists(self, db: AsyncSession, *, obj_id: int) -> bool:
        """Check if a user exists by ID."""
        statement = select(func.count(self.model.id)).where(self.model.id == obj_id)
        result = await db.execute(statement)
        return result.scalar_one() > 0


user_repository = UserRepository()
