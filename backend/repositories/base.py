from __future__ import annotations

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository bound to one model class.

    No commits are performed here - commit responsibility is left to the
    caller owning the session.
    """

    model: Type[T]

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with an async session."""
        self.session = session

    async def get_by_id(self, id_value: str | int) -> Optional[T]:
        """Get an entity by its primary key."""
        return await self.session.get(self.model, id_value)
