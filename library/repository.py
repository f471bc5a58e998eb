"""Library repositories: async database access for the library tables.

Extends BaseRepository with the queries the loan engine and the reporting
layer need: locked lookups, active-loan scans, borrower-name joins and
rating aggregation. No method commits.
"""

from datetime import date
from typing import Any

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from library.models.db_models import (
    Book,
    Customer,
    Favorite,
    Loan,
    LoanStatus,
    Staff,
    WalkInCustomer,
)
from patterns.repository import BaseRepository

# Borrower display name: customer full name, else the walk-in name.
borrower_name = func.coalesce(
    Customer.first_name + " " + Customer.last_name,
    WalkInCustomer.name,
).label("borrower_name")

# Contact: the number captured on the loan, else the borrower's profile phone.
contact_number = func.coalesce(
    Loan.contact_number,
    Customer.phone,
    WalkInCustomer.phone,
).label("contact_number")


def _with_borrowers(stmt: Select) -> Select:
    """Anchor the statement on loans and outer-join both borrower tables.

    Apply before any other join so the borrower joins hang off `loans`.
    """
    return (
        stmt.select_from(Loan)
        .outerjoin(Customer, Customer.id == Loan.customer_id)
        .outerjoin(WalkInCustomer, WalkInCustomer.id == Loan.walk_in_customer_id)
    )


# ---------------------------------------------------------------------------
# Book repository
# ---------------------------------------------------------------------------

class BookRepository(BaseRepository[Book]):
    """Inventory store access."""

    model = Book

    async def list_books(self, include_deleted: bool = False) -> list[Book]:
        return await self.list(filters=None if include_deleted else {"is_deleted": False})

    async def inventory_totals(self) -> dict[str, int]:
        """Title count and copy sums over books that are not deleted."""
        stmt = select(
            func.count(Book.id),
            func.coalesce(func.sum(Book.available_copies), 0),
            func.coalesce(func.sum(Book.total_copies - Book.available_copies), 0),
        ).where(Book.is_deleted.is_(False))
        total_books, available, borrowed = (await self.session.execute(stmt)).one()
        return {
            "total_books": int(total_books),
            "available_copies": int(available),
            "borrowed_copies": int(borrowed),
        }

    async def highest_rated(self) -> Book | None:
        stmt = (
            select(Book)
            .where(Book.is_deleted.is_(False), Book.rating.is_not(None), Book.rating > 0)
            .order_by(Book.rating.desc(), Book.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Borrower repositories
# ---------------------------------------------------------------------------

class CustomerRepository(BaseRepository[Customer]):
    model = Customer

    async def get_by_email(self, email: str) -> Customer | None:
        result = await self.session.execute(select(Customer).where(Customer.email == email))
        return result.scalar_one_or_none()


class WalkInCustomerRepository(BaseRepository[WalkInCustomer]):
    model = WalkInCustomer


# ---------------------------------------------------------------------------
# Loan repository
# ---------------------------------------------------------------------------

class LoanRepository(BaseRepository[Loan]):
    """Loan ledger access."""

    model = Loan

    async def active_borrower_names(self, book_id: int) -> list[str]:
        """Distinct names of everyone holding copies of the book, in loan order."""
        stmt = (
            _with_borrowers(select(borrower_name))
            .where(Loan.book_id == book_id, Loan.status == LoanStatus.BORROWED)
            .order_by(Loan.id)
        )
        names = (await self.session.execute(stmt)).scalars().all()
        return list(dict.fromkeys(names))

    async def active_summary(self, book_id: int) -> dict[str, int]:
        stmt = select(
            func.count(Loan.id),
            func.coalesce(func.sum(Loan.copies_borrowed), 0),
        ).where(Loan.book_id == book_id, Loan.status == LoanStatus.BORROWED)
        count, copies = (await self.session.execute(stmt)).one()
        return {"active_loans": int(count), "copies_out": int(copies)}

    async def average_rating(self, book_id: int) -> Any:
        """Mean of submitted ratings over the book's returned loans."""
        stmt = select(func.avg(Loan.rating)).where(
            Loan.book_id == book_id,
            Loan.status == LoanStatus.RETURNED,
            Loan.rating.is_not(None),
        )
        return (await self.session.execute(stmt)).scalar()

    async def for_customer(self, customer_id: int) -> list[dict]:
        stmt = (
            select(Loan, Book.title, Book.author, Book.genre)
            .join(Book, Book.id == Loan.book_id)
            .where(Loan.customer_id == customer_id)
            .order_by(Loan.loan_date.desc(), Loan.id.desc())
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {**loan.to_dict(), "book_title": title, "author": author, "genre": genre}
            for loan, title, author, genre in rows
        ]

    async def with_borrowers(self, limit: int | None = None) -> list[dict]:
        """Every loan joined with its book and resolved borrower."""
        stmt = (
            _with_borrowers(select(Loan, Book.title, Book.author, borrower_name, contact_number))
            .join(Book, Book.id == Loan.book_id)
            .order_by(Loan.loan_date.desc(), Loan.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await self.session.execute(stmt)).all()
        return [
            {
                **loan.to_dict(),
                "book_title": title,
                "author": author,
                "borrower_name": name,
                "contact_number": contact,
            }
            for loan, title, author, name, contact in rows
        ]

    async def status_counts(self, today: date) -> dict[str, int]:
        active = select(func.count(Loan.id)).where(Loan.status == LoanStatus.BORROWED)
        overdue = active.where(Loan.expected_return_date < today)
        borrowers = select(
            func.count(func.distinct(Loan.customer_id)),
            func.count(func.distinct(Loan.walk_in_customer_id)),
        )
        customers, walk_ins = (await self.session.execute(borrowers)).one()
        return {
            "active_loans": int((await self.session.execute(active)).scalar()),
            "overdue_loans": int((await self.session.execute(overdue)).scalar()),
            "total_borrowers": int(customers) + int(walk_ins),
        }

    async def most_borrowed(self, limit: int) -> list[dict]:
        """Books ranked by total copies ever lent."""
        copies = func.sum(Loan.copies_borrowed).label("borrow_count")
        stmt = (
            select(Book.id, Book.title, copies)
            .select_from(Loan)
            .join(Book, Book.id == Loan.book_id)
            .group_by(Book.id, Book.title)
            .order_by(copies.desc(), Book.id)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {"book_id": book_id, "title": title, "borrow_count": int(count)}
            for book_id, title, count in rows
        ]

    async def loan_dates_since(self, start: date) -> list[date]:
        stmt = select(Loan.loan_date).where(Loan.loan_date >= start)
        return list((await self.session.execute(stmt)).scalars().all())


# ---------------------------------------------------------------------------
# Favorite repository
# ---------------------------------------------------------------------------

class FavoriteRepository(BaseRepository[Favorite]):
    model = Favorite

    async def find(self, customer_id: int, book_id: int) -> Favorite | None:
        stmt = select(Favorite).where(
            Favorite.customer_id == customer_id,
            Favorite.book_id == book_id,
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def remove(self, customer_id: int, book_id: int) -> bool:
        stmt = delete(Favorite).where(
            Favorite.customer_id == customer_id,
            Favorite.book_id == book_id,
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def with_books(self, customer_id: int) -> list[dict]:
        stmt = (
            select(Favorite, Book)
            .join(Book, Book.id == Favorite.book_id)
            .where(Favorite.customer_id == customer_id)
            .order_by(Book.title, Favorite.id)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            {
                **book.to_dict(),
                **favorite.to_dict(),
                "book_deleted": book.is_deleted,
            }
            for favorite, book in rows
        ]

    async def book_ids(self, customer_id: int) -> list[int]:
        stmt = (
            select(Favorite.book_id)
            .where(Favorite.customer_id == customer_id)
            .order_by(Favorite.book_id)
        )
        return list((await self.session.execute(stmt)).scalars().all())


# ---------------------------------------------------------------------------
# Staff repository
# ---------------------------------------------------------------------------

class StaffRepository(BaseRepository[Staff]):
    model = Staff

    async def list_members(self) -> list[Staff]:
        """Non-admin staff, newest first."""
        stmt = select(Staff).where(Staff.is_admin.is_(False)).order_by(Staff.id.desc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        stmt = select(Staff.id).where(Staff.email == email)
        if exclude_id is not None:
            stmt = stmt.where(Staff.id != exclude_id)
        return (await self.session.execute(stmt.limit(1))).first() is not None

    async def remove(self, staff: Staff) -> None:
        await self.session.delete(staff)
        await self.session.flush()
