"""Test adding, editing and soft-deleting books."""
from datetime import date

import pytest

from library.errors import CapacityConflictError, HasActiveLoansError, NotFoundError
from library.models.schemas import BookCreate, BookUpdate, WalkInProfile


def _update(**overrides) -> BookUpdate:
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
    return BookUpdate(**data)


@pytest.mark.asyncio
async def test_add_book_starts_fully_available(make_book):
    book = await make_book(total_copies=4)
    assert book["available_copies"] == book["total_copies"] == 4
    assert book["published_date"] == "Aug 01, 1965"
    assert book["rating"] is None
    assert book["is_deleted"] is False


@pytest.mark.asyncio
async def test_add_book_uses_configured_defaults(engine):
    book = await engine.add_book(
        BookCreate(title="Emma", author="Jane Austen", genre="Classic", total_copies=1)
    )
    assert book["borrow_limit"] == engine.settings.loans.borrow_limit
    assert book["return_days"] == engine.settings.loans.return_days


@pytest.mark.asyncio
async def test_update_shifts_available_by_total_change(engine, make_book, make_customer):
    book = await make_book(total_copies=3)
    customer = await make_customer()
    await engine.borrow(book["book_id"], customer["customer_id"], 1)

    grown = await engine.update_book(book["book_id"], _update(total_copies=5, title="Dune (2nd ed.)"))
    assert grown["total_copies"] == 5
    assert grown["available_copies"] == 4
    assert grown["title"] == "Dune (2nd ed.)"

    shrunk = await engine.update_book(book["book_id"], _update(total_copies=2))
    assert shrunk["available_copies"] == 1


@pytest.mark.asyncio
async def test_reduce_to_exactly_borrowed(engine, make_book, make_customer, inventory_consistent):
    book = await make_book(total_copies=3, borrow_limit=2)
    customer = await make_customer()
    await engine.borrow(book["book_id"], customer["customer_id"], 2)

    updated = await engine.update_book(book["book_id"], _update(total_copies=2))

    assert updated["available_copies"] == 0
    assert await inventory_consistent()


@pytest.mark.asyncio
async def test_reduce_below_borrowed_conflicts(engine, reporting, make_book, make_customer):
    book = await make_book(total_copies=3, borrow_limit=2)
    customer = await make_customer()
    await engine.borrow(book["book_id"], customer["customer_id"], 2)

    with pytest.raises(CapacityConflictError) as exc_info:
        await engine.update_book(book["book_id"], _update(total_copies=1, title="Renamed"))

    assert exc_info.value.borrowed == 2
    unchanged = await reporting.get_book(book["book_id"])
    assert unchanged["title"] == "Dune"
    assert unchanged["total_copies"] == 3
    assert unchanged["available_copies"] == 1


@pytest.mark.asyncio
async def test_update_missing_book(engine):
    with pytest.raises(NotFoundError):
        await engine.update_book(404, _update())


@pytest.mark.asyncio
async def test_delete_is_soft(engine, reporting, make_book):
    keep = await make_book(title="Emma")
    gone = await make_book(title="Dune")

    result = await engine.delete_book(gone["book_id"])

    assert result == {"book_id": gone["book_id"], "title": "Dune"}
    listed = [b["book_id"] for b in await reporting.list_books()]
    assert listed == [keep["book_id"]]
    fetched = await reporting.get_book(gone["book_id"])
    assert fetched["is_deleted"] is True
    with_deleted = await reporting.list_books(include_deleted=True)
    assert len(with_deleted) == 2


@pytest.mark.asyncio
async def test_delete_twice_is_not_found(engine, make_book):
    book = await make_book()
    await engine.delete_book(book["book_id"])
    with pytest.raises(NotFoundError):
        await engine.delete_book(book["book_id"])


@pytest.mark.asyncio
async def test_delete_blocked_by_active_loans(engine, reporting, make_book, make_customer):
    book = await make_book(total_copies=3, borrow_limit=1)
    ada = await make_customer()
    await engine.borrow(book["book_id"], ada["customer_id"], 1)
    await engine.borrow(book["book_id"], ada["customer_id"], 1)
    await engine.walk_in_borrow(book["book_id"], WalkInProfile(name="Sam Walker", phone="555-7777"), 1)

    with pytest.raises(HasActiveLoansError) as exc_info:
        await engine.delete_book(book["book_id"])

    assert exc_info.value.borrower_names == ["Ada Lovelace", "Sam Walker"]
    assert "Ada Lovelace" in exc_info.value.detail
    assert (await reporting.get_book(book["book_id"]))["is_deleted"] is False


@pytest.mark.asyncio
async def test_delete_after_all_returned(engine, reporting, make_book, make_customer):
    book = await make_book()
    customer = await make_customer()
    loan = await engine.borrow(book["book_id"], customer["customer_id"], 1)
    await engine.return_loan(loan["loan_id"], book["book_id"], rating=5)

    await engine.delete_book(book["book_id"])

    # history survives the delete
    history = await reporting.list_customer_loans(customer["customer_id"])
    assert [h["loan_id"] for h in history] == [loan["loan_id"]]


@pytest.mark.asyncio
async def test_list_books_is_repeatable(reporting, make_book):
    await make_book(title="Dune")
    await make_book(title="Emma")
    assert await reporting.list_books() == await reporting.list_books()
