"""Test that concurrent operations on one book never break its counters."""
import asyncio

import pytest

from core.database import WRITE_INTENT
from library.errors import HasActiveLoansError, InsufficientCopiesError, NotFoundError
from library.models.db_models import Book
from library.models.schemas import BookUpdate


@pytest.mark.asyncio
async def test_two_borrows_race_for_last_copies(engine, reporting, make_book, make_customer, inventory_consistent):
    book = await make_book(total_copies=2, borrow_limit=2)
    ada = await make_customer()
    grace = await make_customer(first_name="Grace", last_name="Hopper")

    results = await asyncio.gather(
        engine.borrow(book["book_id"], ada["customer_id"], 2),
        engine.borrow(book["book_id"], grace["customer_id"], 2),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, dict)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientCopiesError)
    assert (await reporting.get_book(book["book_id"]))["available_copies"] == 0
    assert await inventory_consistent()


@pytest.mark.asyncio
async def test_many_single_copy_borrows(engine, reporting, make_book, make_customer, inventory_consistent):
    book = await make_book(total_copies=3, borrow_limit=1)
    customer = await make_customer()

    results = await asyncio.gather(
        *(engine.borrow(book["book_id"], customer["customer_id"], 1) for _ in range(6)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, dict) for r in results) == 3
    assert all(
        isinstance(r, InsufficientCopiesError) for r in results if not isinstance(r, dict)
    )
    assert (await reporting.get_book(book["book_id"]))["available_copies"] == 0
    assert await inventory_consistent()


@pytest.mark.asyncio
async def test_borrow_and_shrink_race(engine, reporting, make_book, make_customer, inventory_consistent):
    book = await make_book(total_copies=3, borrow_limit=2)
    customer = await make_customer()
    shrink = BookUpdate(
        title="Dune", author="Frank Herbert", genre="Science Fiction",
        total_copies=2, borrow_limit=2, return_days=7,
    )

    await asyncio.gather(
        engine.borrow(book["book_id"], customer["customer_id"], 2),
        engine.update_book(book["book_id"], shrink),
        return_exceptions=True,
    )

    refreshed = await reporting.get_book(book["book_id"])
    assert 0 <= refreshed["available_copies"] <= refreshed["total_copies"]
    assert await inventory_consistent()


@pytest.mark.asyncio
async def test_delete_and_borrow_race(engine, reporting, make_book, make_customer, inventory_consistent):
    book = await make_book(total_copies=3, borrow_limit=2)
    customer = await make_customer()

    deleted, borrowed = await asyncio.gather(
        engine.delete_book(book["book_id"]),
        engine.borrow(book["book_id"], customer["customer_id"], 1),
        return_exceptions=True,
    )

    assert isinstance(deleted, dict) != isinstance(borrowed, dict)
    status = await reporting.check_borrow_status(book["book_id"])
    if isinstance(deleted, dict):
        # delete went first: the borrow saw no live book
        assert isinstance(borrowed, NotFoundError)
        assert status["is_deleted"] is True
        assert status["active_loans"] == 0
    else:
        # borrow went first: the delete saw the active loan
        assert isinstance(deleted, HasActiveLoansError)
        assert status["is_deleted"] is False
        assert status["active_loans"] == 1
        assert status["borrowers"] == ["Ada Lovelace"]
    assert await inventory_consistent()


@pytest.mark.asyncio
async def test_readers_do_not_take_the_write_lock(database, make_book):
    book = await make_book()

    async with database.session_factory() as first, database.session_factory() as second:
        a = await first.get(Book, book["book_id"])
        b = await second.get(Book, book["book_id"])
        assert a.title == b.title == "Dune"

        # a writer can still open its transaction while both readers are live
        async with database.session_factory() as writer:
            await writer.connection(execution_options={WRITE_INTENT: True})
            assert (await writer.get(Book, book["book_id"])).total_copies == 3
            await writer.rollback()
