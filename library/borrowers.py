"""Borrower identity.

A loan belongs to exactly one borrower: a registered customer or a walk-in
customer. Storage keeps two nullable foreign keys guarded by a check
constraint; code only ever sees one of these two value types.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CustomerBorrower:
    """A registered customer with an account."""

    customer_id: int

    @property
    def kind(self) -> str:
        return "customer"


@dataclass(frozen=True)
class WalkInBorrower:
    """A walk-in customer captured at the desk."""

    walk_in_customer_id: int

    @property
    def kind(self) -> str:
        return "walk_in"


Borrower = CustomerBorrower | WalkInBorrower


def borrower_from_columns(
    customer_id: int | None, walk_in_customer_id: int | None
) -> Borrower:
    """Rebuild the borrower from the two storage columns.

    Raises ValueError if the row breaks the exactly-one rule.
    """
    if (customer_id is None) == (walk_in_customer_id is None):
        raise ValueError(
            f"Loan must have exactly one borrower, got customer_id={customer_id} "
            f"walk_in_customer_id={walk_in_customer_id}"
        )
    if customer_id is not None:
        return CustomerBorrower(customer_id)
    return WalkInBorrower(walk_in_customer_id)


def borrower_columns(borrower: Borrower) -> dict[str, int | None]:
    """Split a borrower into the two storage columns."""
    if isinstance(borrower, CustomerBorrower):
        return {"customer_id": borrower.customer_id, "walk_in_customer_id": None}
    if isinstance(borrower, WalkInBorrower):
        return {"customer_id": None, "walk_in_customer_id": borrower.walk_in_customer_id}
    raise TypeError(f"Unknown borrower type: {type(borrower).__name__}")
