"""Library business rules: pure functions.

Each rule takes plain values read from locked rows and returns a RuleResult.
`enforce` turns the first failed rule into its typed error, so the checks stay
testable without a database while the engine still raises precise failures.
"""

from typing import Callable

from library.errors import (
    CapacityConflictError,
    InsufficientCopiesError,
    InvalidStateError,
    LibraryError,
    LimitExceededError,
)
from library.models.db_models import LOAN_LIFECYCLE, LoanStatus
from patterns.rules_engine import RuleResult, evaluate_rules


def check_copies_available(available: int, requested: int) -> RuleResult:
    """A loan cannot take more copies than are on the shelf."""
    passed = requested <= available
    return RuleResult(
        passed=passed,
        rule_name="copies_available",
        message=(
            f"{available} copies available"
            if passed
            else f"Not enough copies available. Only {available} copies left."
        ),
        details={"available": available, "requested": requested},
    )


def check_borrow_limit(limit: int, requested: int) -> RuleResult:
    """A single loan is capped at the book's borrow limit."""
    passed = requested <= limit
    return RuleResult(
        passed=passed,
        rule_name="borrow_limit",
        message=(
            f"Within borrow limit of {limit}"
            if passed
            else f"{requested} copies requested, limit is {limit}"
        ),
        details={"limit": limit, "requested": requested},
    )


def check_capacity(total: int, available: int, new_total: int) -> RuleResult:
    """The new total must still cover every copy currently out on loan."""
    borrowed = total - available
    passed = new_total - borrowed >= 0
    return RuleResult(
        passed=passed,
        rule_name="capacity",
        message=(
            f"{new_total} copies cover {borrowed} borrowed"
            if passed
            else f"{borrowed} copies borrowed, more than new total {new_total}"
        ),
        details={"borrowed": borrowed, "new_total": new_total},
    )


def check_returnable(status: LoanStatus) -> RuleResult:
    """Only an active loan can be returned."""
    passed = LOAN_LIFECYCLE.can_transition(status, LoanStatus.RETURNED)
    return RuleResult(
        passed=passed,
        rule_name="returnable",
        message="Loan is active" if passed else f"Loan is already {status.value}",
        details={"status": status.value},
    )


def check_copies_match(stored: int, claimed: int | None) -> RuleResult:
    """A caller-supplied copy count must agree with the ledger."""
    passed = claimed is None or claimed == stored
    return RuleResult(
        passed=passed,
        rule_name="copies_match",
        message=(
            "Copy count matches loan"
            if passed
            else f"Loan has {stored} copies borrowed, {claimed} given"
        ),
        details={"stored": stored, "claimed": claimed},
    )


def check_rating(rating: int | None) -> RuleResult:
    """A submitted rating must be on the 1 to 5 scale."""
    passed = rating is None or 1 <= rating <= 5
    return RuleResult(
        passed=passed,
        rule_name="rating_range",
        message="Rating accepted" if passed else f"Rating must be between 1 and 5, got {rating}",
        details={"rating": rating},
    )


def next_available(available: int, total: int, delta: int) -> int:
    """Shift the available counter, clamped to [0, total]."""
    return max(0, min(total, available + delta))


# ---------------------------------------------------------------------------
# Rule -> error mapping
# ---------------------------------------------------------------------------

_ERRORS: dict[str, Callable[[RuleResult], LibraryError]] = {
    "copies_available": lambda r: InsufficientCopiesError(
        r.details["available"], r.details["requested"]
    ),
    "borrow_limit": lambda r: LimitExceededError(r.details["limit"], r.details["requested"]),
    "capacity": lambda r: CapacityConflictError(r.details["borrowed"], r.details["new_total"]),
    "returnable": lambda r: InvalidStateError(r.message, **r.details),
    "copies_match": lambda r: InvalidStateError(r.message, **r.details),
    "rating_range": lambda r: InvalidStateError(r.message, **r.details),
}


def enforce(*rules: RuleResult) -> None:
    """Raise the typed error of the first failed rule, if any."""
    outcome = evaluate_rules(*rules)
    failure = outcome.first_failure
    if failure is not None:
        raise _ERRORS[failure.rule_name](failure)
