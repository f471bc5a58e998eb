"""Read-only views over the inventory and the loan ledger.

Nothing here writes. Listings are ordered deterministically so that repeated
calls with no writes in between return identical results.
"""

from collections import Counter
from datetime import date
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from library.config import LibraryConfig, config as default_config
from library.errors import NotFoundError
from library.repository import BookRepository, LoanRepository


def month_starts(today: date, count: int) -> list[date]:
    """First day of each of the last `count` calendar months, oldest first."""
    starts = []
    year, month = today.year, today.month
    for _ in range(count):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


class ReportingService:
    """Book listings, loan histories, borrow status and dashboard analytics."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        settings: LibraryConfig = default_config,
        today: Callable[[], date] = date.today,
    ):
        self._sessions = sessions
        self.settings = settings
        self._today = today

    # -- Books --

    async def list_books(self, include_deleted: bool = False) -> list[dict]:
        async with self._sessions() as session:
            books = await BookRepository(session).list_books(include_deleted)
            return [b.to_dict() for b in books]

    async def get_book(self, book_id: int) -> dict:
        """Fetch one book, soft-deleted or not, so callers can see deletion."""
        async with self._sessions() as session:
            book = await BookRepository(session).get(book_id)
            if book is None:
                raise NotFoundError(f"Book {book_id} not found", book_id=book_id)
            return book.to_dict()

    async def check_borrow_status(self, book_id: int) -> dict:
        async with self._sessions() as session:
            book = await BookRepository(session).get(book_id)
            if book is None:
                raise NotFoundError(f"Book {book_id} not found", book_id=book_id)
            loans = LoanRepository(session)
            summary = await loans.active_summary(book_id)
            borrowers = await loans.active_borrower_names(book_id) if summary["active_loans"] else []
            return {
                "book_id": book.id,
                "title": book.title,
                "is_deleted": book.is_deleted,
                "is_borrowed": summary["active_loans"] > 0,
                "active_loans": summary["active_loans"],
                "copies_out": summary["copies_out"],
                "borrowers": borrowers,
            }

    # -- Loans --

    async def list_customer_loans(self, customer_id: int) -> list[dict]:
        async with self._sessions() as session:
            return await LoanRepository(session).for_customer(customer_id)

    async def get_loan(self, loan_id: int) -> dict:
        async with self._sessions() as session:
            loan = await LoanRepository(session).get(loan_id)
            if loan is None:
                raise NotFoundError(f"Loan {loan_id} not found", loan_id=loan_id)
            return loan.to_dict()

    async def list_all_loans(self) -> list[dict]:
        async with self._sessions() as session:
            return await LoanRepository(session).with_borrowers()

    # -- Dashboard --

    async def dashboard(self) -> dict:
        """Aggregate counts and rankings for the staff dashboard."""
        today = self._today()
        sizes = self.settings.dashboard
        months = month_starts(today, sizes.monthly_window)

        async with self._sessions() as session:
            books = BookRepository(session)
            loans = LoanRepository(session)
            inventory = await books.inventory_totals()
            counts = await loans.status_counts(today)
            top_rated = await books.highest_rated()
            most_borrowed = await loans.most_borrowed(sizes.most_borrowed_count)
            loan_dates = await loans.loan_dates_since(months[0])
            recent = await loans.with_borrowers(limit=sizes.recent_activity_count)

        per_month = Counter((d.year, d.month) for d in loan_dates)
        monthly = [
            {
                "month": start.strftime("%b"),
                "year": start.year,
                "loans": per_month.get((start.year, start.month), 0),
            }
            for start in months
        ]
        return {
            "stats": {**inventory, **counts},
            "highest_rated_book": top_rated.to_dict() if top_rated else None,
            "most_borrowed_books": most_borrowed,
            "loan_activity": monthly,
            "recent_activity": recent,
        }
