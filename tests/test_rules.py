"""Test the pure lending rules, the loan lifecycle and borrower identity."""
from datetime import date
from decimal import Decimal

import pytest

from library.borrowers import (
    CustomerBorrower,
    WalkInBorrower,
    borrower_columns,
    borrower_from_columns,
)
from library.config import LibraryConfig
from library.errors import (
    CapacityConflictError,
    InsufficientCopiesError,
    InvalidStateError,
    LimitExceededError,
)
from library.formatting import format_date, round_rating
from library.models.db_models import LOAN_LIFECYCLE, Loan, LoanStatus, LoanType
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
from patterns.workflow_states import TransitionError


def test_copies_available():
    assert check_copies_available(available=2, requested=2).passed
    result = check_copies_available(available=1, requested=2)
    assert not result.passed
    assert result.message == "Not enough copies available. Only 1 copies left."


def test_borrow_limit():
    assert check_borrow_limit(limit=2, requested=2).passed
    assert not check_borrow_limit(limit=2, requested=3).passed


def test_capacity():
    # 3 total, 1 on the shelf: 2 borrowed
    assert check_capacity(total=3, available=1, new_total=2).passed
    assert not check_capacity(total=3, available=1, new_total=1).passed


def test_copies_match_allows_omitted_count():
    assert check_copies_match(stored=2, claimed=None).passed
    assert check_copies_match(stored=2, claimed=2).passed
    assert not check_copies_match(stored=2, claimed=1).passed


def test_enforce_raises_first_failure():
    # copy shortage is reported before the limit
    with pytest.raises(InsufficientCopiesError):
        enforce(
            check_copies_available(available=1, requested=5),
            check_borrow_limit(limit=2, requested=5),
        )
    with pytest.raises(LimitExceededError) as exc_info:
        enforce(
            check_copies_available(available=5, requested=3),
            check_borrow_limit(limit=2, requested=3),
        )
    assert exc_info.value.limit == 2
    with pytest.raises(CapacityConflictError):
        enforce(check_capacity(total=3, available=0, new_total=2))
    with pytest.raises(InvalidStateError, match="already Returned"):
        enforce(check_returnable(LoanStatus.RETURNED))


def test_enforce_passes_silently():
    enforce(check_copies_available(3, 1), check_borrow_limit(2, 1), check_returnable(LoanStatus.BORROWED))


def test_next_available_is_clamped():
    assert next_available(available=1, total=3, delta=1) == 2
    assert next_available(available=2, total=2, delta=2) == 2
    assert next_available(available=0, total=3, delta=-2) == 0


def test_loan_lifecycle():
    assert LOAN_LIFECYCLE.can_transition(LoanStatus.BORROWED, LoanStatus.RETURNED)
    assert not LOAN_LIFECYCLE.can_transition(LoanStatus.RETURNED, LoanStatus.BORROWED)
    assert LOAN_LIFECYCLE.is_terminal(LoanStatus.RETURNED)
    assert not LOAN_LIFECYCLE.is_terminal(LoanStatus.BORROWED)
    with pytest.raises(TransitionError):
        LOAN_LIFECYCLE.ensure(LoanStatus.RETURNED, LoanStatus.RETURNED)


def test_mark_returned_only_once():
    loan = Loan(
        book_id=1,
        customer_id=7,
        loan_date=date(2026, 10, 1),
        expected_return_date=date(2026, 10, 6),
        copies_borrowed=1,
        status=LoanStatus.BORROWED,
        loan_type=LoanType.STANDARD,
    )
    loan.mark_returned(date(2026, 10, 3), rating=5)
    assert loan.status == LoanStatus.RETURNED
    assert loan.return_date == date(2026, 10, 3)
    with pytest.raises(TransitionError):
        loan.mark_returned(date(2026, 10, 4))
    assert loan.borrower == CustomerBorrower(7)


def test_borrower_columns():
    assert borrower_columns(CustomerBorrower(3)) == {"customer_id": 3, "walk_in_customer_id": None}
    assert borrower_columns(WalkInBorrower(4)) == {"customer_id": None, "walk_in_customer_id": 4}
    assert borrower_from_columns(None, 4) == WalkInBorrower(4)
    assert borrower_from_columns(3, None).kind == "customer"


@pytest.mark.parametrize("customer_id,walk_in_id", [(None, None), (1, 2)])
def test_borrower_requires_exactly_one(customer_id, walk_in_id):
    with pytest.raises(ValueError):
        borrower_from_columns(customer_id, walk_in_id)


def test_formatting():
    assert format_date(date(2026, 10, 5)) == "Oct 05, 2026"
    assert format_date(None) is None
    assert round_rating(13 / 3) == Decimal("4.3")
    assert round_rating(4.25) == Decimal("4.3")
    assert round_rating(None) is None


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("LIBRARY_DEFAULT_RETURN_DAYS", "14")
    monkeypatch.setenv("LIBRARY_DEFAULT_BORROW_LIMIT", "4")
    settings = LibraryConfig.from_env()
    assert settings.loans.return_days == 14
    assert settings.loans.borrow_limit == 4
    assert LibraryConfig.default().loans.return_days == 5


def test_rating_range():
    assert check_rating(None).passed
    assert check_rating(1).passed and check_rating(5).passed
    assert not check_rating(6).passed
    with pytest.raises(InvalidStateError, match="between 1 and 5"):
        enforce(check_rating(9))


@pytest.mark.parametrize("name", ["LIBRARY_MONTHLY_WINDOW", "LIBRARY_MOST_BORROWED_COUNT"])
def test_config_rejects_empty_dashboard_views(monkeypatch, name):
    monkeypatch.setenv(name, "0")
    with pytest.raises(ValueError, match="at least 1"):
        LibraryConfig.from_env()
