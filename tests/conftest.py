"""Shared fixtures: a fresh SQLite file database per test, wired services."""
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from core.database import Database
from library.customers import CustomerService
from library.engine import LoanEngine
from library.favorites import FavoritesService
from library.models.db_models import Book, Loan, LoanStatus
from library.models.schemas import BookCreate, CustomerCreate
from library.reporting import ReportingService
from library.staff import StaffService

TODAY = date(2026, 10, 19)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def engine(database):
    return LoanEngine(database.session_factory, today=lambda: TODAY)


@pytest.fixture
def reporting(database):
    return ReportingService(database.session_factory, today=lambda: TODAY)


@pytest.fixture
def favorites(database):
    return FavoritesService(database.session_factory)


@pytest.fixture
def customers(database):
    return CustomerService(database.session_factory)


@pytest.fixture
def staff(database):
    return StaffService(database.session_factory)


@pytest.fixture
def make_book(engine):
    async def _make(**overrides):
        data = {
            "title": "Dune",
            "author": "Frank Herbert",
            "genre": "Science Fiction",
            "published_date": date(1965, 8, 1),
            "total_copies": 3,
            "borrow_limit": 2,
            "return_days": 7,
        }
        data.update(overrides)
        return await engine.add_book(BookCreate(**data))

    return _make


@pytest.fixture
def make_customer(customers):
    counter = {"n": 0}

    async def _make(first_name="Ada", last_name="Lovelace", phone="555-0100"):
        counter["n"] += 1
        return await customers.register_customer(
            CustomerCreate(
                first_name=first_name,
                last_name=last_name,
                email=f"customer{counter['n']}@example.com",
                phone=phone,
            )
        )

    return _make


@pytest.fixture
def inventory_consistent(database):
    """Async check that every book's counters agree with the ledger."""

    async def _check() -> bool:
        async with database.session_factory() as session:
            out = (
                select(Loan.book_id, func.sum(Loan.copies_borrowed))
                .where(Loan.status == LoanStatus.BORROWED)
                .group_by(Loan.book_id)
            )
            borrowed = dict((await session.execute(out)).all())
            books = (await session.execute(select(Book))).scalars().all()
        for book in books:
            assert 0 <= book.available_copies <= book.total_copies
            assert book.available_copies == book.total_copies - borrowed.get(book.id, 0)
        return True

    return _check
