"""Favorites: set membership over (customer, book) pairs."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import write_session
from library.errors import AlreadyFavoritedError, FavoriteNotFoundError, NotFoundError
from library.models.db_models import Favorite
from library.repository import BookRepository, CustomerRepository, FavoriteRepository

logger = logging.getLogger(__name__)


class FavoritesService:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self._sessions = sessions

    async def add_favorite(self, customer_id: int, book_id: int) -> dict:
        """Bookmark a live book. Raises AlreadyFavoritedError on a duplicate."""
        try:
            async with write_session(self._sessions) as session:
                book = await BookRepository(session).get(book_id)
                if book is None or book.is_deleted:
                    raise NotFoundError(f"Book {book_id} not found", book_id=book_id)
                if await CustomerRepository(session).get(customer_id) is None:
                    raise NotFoundError(
                        f"Customer {customer_id} not found", customer_id=customer_id
                    )
                favorites = FavoriteRepository(session)
                if await favorites.find(customer_id, book_id) is not None:
                    raise AlreadyFavoritedError(customer_id, book_id)
                favorite = await favorites.add(
                    Favorite(customer_id=customer_id, book_id=book_id)
                )
                result = favorite.to_dict()
        except IntegrityError as exc:
            # a concurrent add won the unique constraint
            raise AlreadyFavoritedError(customer_id, book_id) from exc

        logger.info("Customer %s favorited book %s", customer_id, book_id)
        return result

    async def remove_favorite(self, customer_id: int, book_id: int) -> dict:
        """Drop a bookmark, including one on a deleted book."""
        async with write_session(self._sessions) as session:
            removed = await FavoriteRepository(session).remove(customer_id, book_id)
            if not removed:
                raise FavoriteNotFoundError(
                    "Favorite not found", customer_id=customer_id, book_id=book_id
                )

        logger.info("Customer %s unfavorited book %s", customer_id, book_id)
        return {"message": "Removed from favorites", "customer_id": customer_id, "book_id": book_id}

    async def toggle_favorite(self, customer_id: int, book_id: int) -> dict:
        if await self.is_favorited(customer_id, book_id):
            await self.remove_favorite(customer_id, book_id)
            return {"is_favorited": False, "data": None}
        favorite = await self.add_favorite(customer_id, book_id)
        return {"is_favorited": True, "data": favorite}

    async def is_favorited(self, customer_id: int, book_id: int) -> bool:
        async with self._sessions() as session:
            return await FavoriteRepository(session).find(customer_id, book_id) is not None

    async def list_favorites(self, customer_id: int) -> list[dict]:
        """Favorites with book details, flagged when the book has been deleted."""
        async with self._sessions() as session:
            return await FavoriteRepository(session).with_books(customer_id)

    async def favorite_book_ids(self, customer_id: int) -> list[int]:
        async with self._sessions() as session:
            return await FavoriteRepository(session).book_ids(customer_id)
