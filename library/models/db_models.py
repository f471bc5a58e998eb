"""SQLAlchemy models for the library.

Tables: books, customers, walk_in_customers, loans, favorites, staff.

Models deliberately carry no ORM relationships: async sessions cannot lazy
load, so joins are spelled out in the repositories. The to_dict() methods give
the standard serialisation used by services and the router.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import Base, IdentityMixin, TimestampMixin, utcnow
from library.borrowers import Borrower, borrower_columns, borrower_from_columns
from library.formatting import as_float, format_date, format_timestamp
from patterns.workflow_states import StateMachine


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LoanStatus(str, Enum):
    BORROWED = "Borrowed"
    RETURNED = "Returned"


class LoanType(str, Enum):
    STANDARD = "Standard"
    WALK_IN = "Walk-in"


class BookCondition(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    DAMAGED = "Damaged"


def _enum_column(enum_cls: type[Enum], length: int = 20) -> SAEnum:
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=length,
        validate_strings=True,
    )


LOAN_LIFECYCLE: StateMachine[LoanStatus] = StateMachine(
    name="loan",
    transitions={
        LoanStatus.BORROWED: [LoanStatus.RETURNED],
        LoanStatus.RETURNED: [],  # terminal
    },
)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class Book(IdentityMixin, TimestampMixin, Base):
    """A catalog title with its copy counters."""

    __tablename__ = "books"
    __table_args__ = (
        CheckConstraint("total_copies >= 1", name="ck_books_total_copies"),
        CheckConstraint(
            "available_copies >= 0 AND available_copies <= total_copies",
            name="ck_books_available_copies",
        ),
        CheckConstraint("borrow_limit >= 1", name="ck_books_borrow_limit"),
        CheckConstraint("return_days >= 1", name="ck_books_return_days"),
        CheckConstraint("rating IS NULL OR (rating >= 0 AND rating <= 5)", name="ck_books_rating"),
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    genre: Mapped[str] = mapped_column(String(100), nullable=False)
    published_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False)
    borrow_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    return_days: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 1), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    @property
    def borrowed_copies(self) -> int:
        return self.total_copies - self.available_copies

    def to_dict(self) -> dict:
        return {
            "book_id": self.id,
            "title": self.title,
            "author": self.author,
            "genre": self.genre,
            "published_date": format_date(self.published_date),
            "total_copies": self.total_copies,
            "available_copies": self.available_copies,
            "borrow_limit": self.borrow_limit,
            "return_days": self.return_days,
            "rating": as_float(self.rating),
            "is_deleted": self.is_deleted,
        }


# ---------------------------------------------------------------------------
# Borrowers
# ---------------------------------------------------------------------------

class Customer(IdentityMixin, TimestampMixin, Base):
    """A registered customer account."""

    __tablename__ = "customers"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict:
        return {
            "customer_id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
        }


class WalkInCustomer(IdentityMixin, TimestampMixin, Base):
    """A borrower without an account, captured for an in-person loan."""

    __tablename__ = "walk_in_customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "walk_in_customer_id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
        }


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Loan(IdentityMixin, TimestampMixin, Base):
    """One borrowing transaction: some copies of one book by one borrower."""

    __tablename__ = "loans"
    __table_args__ = (
        CheckConstraint(
            "(customer_id IS NULL) <> (walk_in_customer_id IS NULL)",
            name="ck_loans_one_borrower",
        ),
        CheckConstraint("copies_borrowed >= 1", name="ck_loans_copies_borrowed"),
        CheckConstraint("fine_amount >= 0", name="ck_loans_fine_amount"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_loans_rating"),
    )

    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id"), nullable=False, index=True
    )
    customer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("customers.id"), nullable=True, index=True
    )
    walk_in_customer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("walk_in_customers.id"), nullable=True, index=True
    )
    loan_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    expected_return_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    copies_borrowed: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[LoanStatus] = mapped_column(
        _enum_column(LoanStatus), nullable=False, default=LoanStatus.BORROWED, index=True
    )
    fine_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    book_condition: Mapped[BookCondition | None] = mapped_column(
        _enum_column(BookCondition), nullable=True
    )
    loan_type: Mapped[LoanType] = mapped_column(
        _enum_column(LoanType), nullable=False, default=LoanType.STANDARD
    )
    contact_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    @classmethod
    def open(
        cls,
        book: Book,
        borrower: Borrower,
        copies: int,
        loan_date: date,
        due_date: date,
        loan_type: LoanType,
        contact_number: str | None = None,
    ) -> "Loan":
        """Build a new loan in the Borrowed state."""
        return cls(
            book_id=book.id,
            **borrower_columns(borrower),
            loan_date=loan_date,
            expected_return_date=due_date,
            copies_borrowed=copies,
            status=LoanStatus.BORROWED,
            fine_amount=Decimal("0.00"),
            loan_type=loan_type,
            contact_number=contact_number,
        )

    @property
    def borrower(self) -> Borrower:
        return borrower_from_columns(self.customer_id, self.walk_in_customer_id)

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.BORROWED

    def mark_returned(
        self,
        when: date,
        rating: int | None = None,
        condition: BookCondition | None = None,
    ) -> None:
        """Close the loan. Raises TransitionError if it is already closed."""
        self.status = LOAN_LIFECYCLE.ensure(self.status, LoanStatus.RETURNED)
        self.return_date = when
        self.rating = rating
        self.book_condition = condition

    def to_dict(self) -> dict:
        borrower = self.borrower
        return {
            "loan_id": self.id,
            "book_id": self.book_id,
            "borrower_type": borrower.kind,
            "customer_id": self.customer_id,
            "walk_in_customer_id": self.walk_in_customer_id,
            "loan_date": format_date(self.loan_date),
            "expected_return_date": format_date(self.expected_return_date),
            "return_date": format_date(self.return_date),
            "copies_borrowed": self.copies_borrowed,
            "status": self.status.value,
            "fine_amount": as_float(self.fine_amount),
            "rating": self.rating,
            "book_condition": self.book_condition.value if self.book_condition else None,
            "loan_type": self.loan_type.value,
            "contact_number": self.contact_number,
        }


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

class Favorite(IdentityMixin, Base):
    """A (customer, book) bookmark."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("customer_id", "book_id", name="uq_favorites_customer_book"),
    )

    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id"), nullable=False, index=True
    )
    book_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("books.id"), nullable=False, index=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def to_dict(self) -> dict:
        return {
            "favorite_id": self.id,
            "customer_id": self.customer_id,
            "book_id": self.book_id,
            "added_date": format_timestamp(self.added_at),
        }


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

class Staff(IdentityMixin, TimestampMixin, Base):
    """A library staff member. Admins manage the other staff accounts."""

    __tablename__ = "staff"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "staff_id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "is_admin": self.is_admin,
        }
