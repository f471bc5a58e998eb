"""Async repository pattern for database access.

Provides a generic base repository with lookup, row locking, listing and
insertion. Domain repositories subclass this to add their own queries.

Repositories never commit: the caller owns the transaction, so several
repository calls can be composed into one atomic unit of work.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository.

    Subclass and set `model` to your SQLAlchemy model::

        class BookRepository(BaseRepository[Book]):
            model = Book

            async def list_active(self):
                stmt = select(self.model).where(self.model.is_deleted.is_(False))
                result = await self.session.execute(stmt)
                return list(result.scalars().all())
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    # -- Get by ID --

    async def get(self, item_id: int, for_update: bool = False) -> ModelT | None:
        """Get a single row by ID.

        With ``for_update`` the row is locked until the surrounding
        transaction ends.
        """
        stmt = select(self.model).where(self.model.id == item_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # -- List --

    async def list(
        self,
        filters: dict[str, Any] | None = None,
        order_by: Any = None,
    ) -> list[ModelT]:
        """List rows matching simple equality filters."""
        stmt = select(self.model)
        if filters:
            for col_name, value in filters.items():
                if hasattr(self.model, col_name) and value is not None:
                    stmt = stmt.where(getattr(self.model, col_name) == value)
        stmt = stmt.order_by(order_by if order_by is not None else self.model.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # -- Create --

    async def add(self, item: ModelT) -> ModelT:
        """Insert a row and flush so its ID is assigned."""
        self.session.add(item)
        await self.session.flush()
        return item

    async def create(self, data: dict[str, Any]) -> ModelT:
        """Create a new row from a dict of column values."""
        return await self.add(self.model(**data))
