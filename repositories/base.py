"""
Base Repository Pattern with SQLAlchemy

Common async operations shared by all repositories.
"""
from typing import TypeVar, Generic, Optional, List, Type, Any

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.base import Base


# Generic type for model classes
ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Base repository with common async database operations.

    Subclasses set the `model` class attribute.

    Example:
        class ListingRepository(BaseRepository[Listing]):
            model = Listing
    """

    model: Type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # ============================================
    # READ OPERATIONS
    # ============================================

    async def get(self, entity_id: Any) -> Optional[ModelT]:
        """Get entity by primary key, or None."""
        return await self.session.get(self.model, entity_id)

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self.model)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # ============================================
    # WRITE OPERATIONS
    # ============================================

    async def add(self, entity: ModelT) -> ModelT:
        """Add a new entity and flush to populate generated values."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def add_all(self, entities: List[ModelT]) -> List[ModelT]:
        self.session.add_all(entities)
        await self.session.flush()
        return entities
