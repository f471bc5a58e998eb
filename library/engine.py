"""Loan engine: every inventory-changing operation as one transaction.

Each public method opens its own transaction, locks the book row before
reading any counter, applies the pure rules from library.rules, writes, and
commits. Any failure rolls the whole operation back and propagates to the
caller unchanged; nothing is retried.

Lock order is always book row, then loan row.

After every commit, for every book:

    available_copies == total_copies - sum(copies_borrowed of Borrowed loans)
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import write_session
from library.borrowers import Borrower, CustomerBorrower, WalkInBorrower
from library.config import LibraryConfig, config as default_config
from library.errors import HasActiveLoansError, InvalidStateError, LibraryError, NotFoundError
from library.formatting import round_rating
from library.models.db_models import Book, BookCondition, Loan, LoanType
from library.models.schemas import BookCreate, BookUpdate, WalkInProfile
from library.repository import (
    BookRepository,
    CustomerRepository,
    LoanRepository,
    WalkInCustomerRepository,
)
from library.rules import (
    check_borrow_limit,
    check_capacity,
    check_copies_available,
    check_copies_match,
    check_rating,
    check_returnable,
    enforce,
    next_available,
)

logger = logging.getLogger(__name__)


def _parse_condition(value: BookCondition | str | None) -> BookCondition | None:
    if value is None:
        return None
    try:
        return BookCondition(value)
    except ValueError as exc:
        allowed = [c.value for c in BookCondition]
        raise InvalidStateError(
            f"Unknown book condition {value!r}. Expected one of {allowed}",
            book_condition=str(value),
        ) from exc


class LoanEngine:
    """Borrow, return and catalog mutations over the inventory and ledger.

    Usage::

        engine = LoanEngine(database.session_factory)
        loan = await engine.borrow(book_id=1, customer_id=7, copies=2)
        await engine.return_loan(loan["loan_id"], book_id=1, rating=5)
    """

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        settings: LibraryConfig = default_config,
        today: Callable[[], date] = date.today,
    ):
        self._sessions = sessions
        self.settings = settings
        self._today = today

    # -- Transaction plumbing --

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with write_session(self._sessions) as session:
                yield session
        except LibraryError as exc:
            logger.warning("%s rejected (%s): %s", operation, exc.kind, exc.detail)
            raise

    @staticmethod
    async def _lock_book(session: AsyncSession, book_id: int) -> Book:
        """Lock a live book row for the rest of the transaction."""
        book = await BookRepository(session).get(book_id, for_update=True)
        if book is None or book.is_deleted:
            raise NotFoundError(f"Book {book_id} not found", book_id=book_id)
        return book

    async def _lend(
        self,
        session: AsyncSession,
        book: Book,
        borrower: Borrower,
        copies: int,
        loan_type: LoanType,
        contact_number: str | None,
    ) -> Loan:
        enforce(
            check_copies_available(book.available_copies, copies),
            check_borrow_limit(book.borrow_limit, copies),
        )
        today = self._today()
        book.available_copies -= copies
        loan = Loan.open(
            book=book,
            borrower=borrower,
            copies=copies,
            loan_date=today,
            due_date=today + timedelta(days=book.return_days),
            loan_type=loan_type,
            contact_number=contact_number,
        )
        return await LoanRepository(session).add(loan)

    # -- Borrowing --

    async def borrow(
        self,
        book_id: int,
        customer_id: int,
        copies: int,
        contact_number: str | None = None,
    ) -> dict:
        """Lend copies of a book to a registered customer."""
        async with self._transaction("borrow") as session:
            book = await self._lock_book(session, book_id)
            customer = await CustomerRepository(session).get(customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)
            loan = await self._lend(
                session,
                book,
                CustomerBorrower(customer.id),
                copies,
                LoanType.STANDARD,
                contact_number or customer.phone,
            )
            result = {**loan.to_dict(), "book_title": book.title}

        logger.info(
            "Loan %s: %d copies of book %s to customer %s",
            result["loan_id"], copies, book_id, customer_id,
        )
        return result

    async def walk_in_borrow(self, book_id: int, profile: WalkInProfile, copies: int) -> dict:
        """Register a walk-in customer and lend to them in one transaction.

        If the loan is rejected the walk-in customer is rolled back with it.
        """
        async with self._transaction("walk_in_borrow") as session:
            book = await self._lock_book(session, book_id)
            walk_in = await WalkInCustomerRepository(session).create(profile.model_dump())
            loan = await self._lend(
                session,
                book,
                WalkInBorrower(walk_in.id),
                copies,
                LoanType.WALK_IN,
                walk_in.phone,
            )
            result = {
                "loan_id": loan.id,
                "customer": walk_in.to_dict(),
                "loan": {**loan.to_dict(), "book_title": book.title},
            }

        logger.info(
            "Walk-in loan %s: %d copies of book %s to %s",
            result["loan_id"], copies, book_id, profile.name,
        )
        return result

    # -- Returning --

    async def return_loan(
        self,
        loan_id: int,
        book_id: int,
        rating: int | None = None,
        copies_borrowed: int | None = None,
        book_condition: BookCondition | str | None = None,
    ) -> dict:
        """Close an active loan and put its copies back on the shelf.

        The copies credited are the loan's own; a caller-supplied count is
        only checked against it. A rating refreshes the book's average.
        """
        # a rating of 0 or less means no rating was given
        if rating is not None and rating <= 0:
            rating = None
        enforce(check_rating(rating))
        condition = _parse_condition(book_condition)

        async with self._transaction("return_loan") as session:
            books = BookRepository(session)
            loans = LoanRepository(session)

            book = await books.get(book_id, for_update=True)
            loan = await loans.get(loan_id, for_update=True)
            if book is None or loan is None or loan.book_id != book_id:
                raise NotFoundError(
                    f"Loan {loan_id} not found for book {book_id}",
                    loan_id=loan_id,
                    book_id=book_id,
                )
            enforce(
                check_returnable(loan.status),
                check_copies_match(loan.copies_borrowed, copies_borrowed),
            )

            loan.mark_returned(self._today(), rating=rating, condition=condition)
            await session.flush()

            if rating is not None:
                book.rating = round_rating(await loans.average_rating(book.id))
            book.available_copies = next_available(
                book.available_copies, book.total_copies, loan.copies_borrowed
            )
            result = {
                "loan_id": loan.id,
                "return_date": loan.to_dict()["return_date"],
                "status": loan.status.value,
                "rating": loan.rating,
                "book_condition": condition.value if condition else None,
            }

        logger.info("Loan %s returned, book %s now has %d available",
                    loan_id, book_id, book.available_copies)
        return result

    # -- Catalog --

    async def add_book(self, data: BookCreate) -> dict:
        """Add a title with all its copies on the shelf."""
        async with self._transaction("add_book") as session:
            book = await BookRepository(session).create({
                "title": data.title,
                "author": data.author,
                "genre": data.genre,
                "published_date": data.published_date,
                "total_copies": data.total_copies,
                "available_copies": data.total_copies,
                "borrow_limit": data.borrow_limit or self.settings.loans.borrow_limit,
                "return_days": data.return_days or self.settings.loans.return_days,
                "is_deleted": False,
            })
            result = book.to_dict()

        logger.info("Book %s added: %s", result["book_id"], result["title"])
        return result

    async def update_book(self, book_id: int, data: BookUpdate) -> dict:
        """Overwrite a book's fields, shifting available copies by the change in total.

        Fails if the new total is smaller than the copies currently out.
        """
        async with self._transaction("update_book") as session:
            book = await self._lock_book(session, book_id)
            enforce(check_capacity(book.total_copies, book.available_copies, data.total_copies))

            book.available_copies += data.total_copies - book.total_copies
            book.total_copies = data.total_copies
            book.title = data.title
            book.author = data.author
            book.genre = data.genre
            book.published_date = data.published_date
            book.borrow_limit = data.borrow_limit
            book.return_days = data.return_days
            result = book.to_dict()

        logger.info("Book %s updated: %d/%d available",
                    book_id, result["available_copies"], result["total_copies"])
        return result

    async def delete_book(self, book_id: int) -> dict:
        """Soft-delete a book that nobody is holding.

        Loan history and favorites stay in place.
        """
        async with self._transaction("delete_book") as session:
            book = await self._lock_book(session, book_id)
            loans = LoanRepository(session)
            summary = await loans.active_summary(book.id)
            if summary["active_loans"] > 0:
                names = await loans.active_borrower_names(book.id)
                raise HasActiveLoansError(book.title, names)

            book.is_deleted = True
            result = {"book_id": book.id, "title": book.title}

        logger.info("Book %s soft-deleted", book_id)
        return result
