"""Typed failures raised by library operations.

Every error carries a machine-checkable ``kind`` and a human-readable
``detail``. The HTTP layer maps kinds to status codes; nothing here knows
about HTTP.
"""

from typing import Any


class LibraryError(Exception):
    """Base class for all library failures."""

    kind = "library_error"

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail, **self.context}


class NotFoundError(LibraryError):
    kind = "not_found"


class FavoriteNotFoundError(NotFoundError):
    kind = "favorite_not_found"


class InsufficientCopiesError(LibraryError):
    kind = "insufficient_copies"

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Not enough copies available. Only {available} copies left.",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class LimitExceededError(LibraryError):
    kind = "limit_exceeded"

    def __init__(self, limit: int, requested: int):
        super().__init__(
            f"Borrow limit exceeded. At most {limit} copies per loan, {requested} requested.",
            limit=limit,
            requested=requested,
        )
        self.limit = limit
        self.requested = requested


class CapacityConflictError(LibraryError):
    kind = "capacity_conflict"

    def __init__(self, borrowed: int, new_total: int):
        super().__init__(
            f"Cannot reduce copies to {new_total}: {borrowed} copies are currently "
            f"borrowed, more borrowed copies than new total.",
            borrowed=borrowed,
            new_total=new_total,
        )
        self.borrowed = borrowed
        self.new_total = new_total


class HasActiveLoansError(LibraryError):
    kind = "has_active_loans"

    def __init__(self, title: str, borrower_names: list[str]):
        names = ", ".join(borrower_names)
        super().__init__(
            f"Cannot delete '{title}'. It is currently borrowed by: {names}.",
            borrower_names=borrower_names,
        )
        self.borrower_names = borrower_names


class InvalidStateError(LibraryError):
    kind = "invalid_state"


class AlreadyFavoritedError(LibraryError):
    kind = "already_favorited"

    def __init__(self, customer_id: int, book_id: int):
        super().__init__(
            "Book is already in favorites",
            customer_id=customer_id,
            book_id=book_id,
        )


class AlreadyExistsError(LibraryError):
    kind = "already_exists"
