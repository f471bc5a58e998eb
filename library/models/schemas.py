"""Pydantic schemas for request validation and engine inputs."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from library.models.db_models import BookCondition


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------

class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=200)
    genre: str = Field(..., min_length=1, max_length=100)
    published_date: Optional[date] = None
    total_copies: int = Field(..., ge=1)
    borrow_limit: Optional[int] = Field(None, ge=1)
    return_days: Optional[int] = Field(None, ge=1)


class BookUpdate(BaseModel):
    """Full replacement of the editable book fields."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=200)
    genre: str = Field(..., min_length=1, max_length=100)
    published_date: Optional[date] = None
    total_copies: int = Field(..., ge=1)
    borrow_limit: int = Field(..., ge=1)
    return_days: int = Field(..., ge=1)


# ---------------------------------------------------------------------------
# Borrowers
# ---------------------------------------------------------------------------

class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=50)


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

class StaffCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z\s\-'.]+$")
    last_name: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z\s\-'.]+$")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(None, max_length=50)
    is_admin: bool = False


class StaffUpdate(StaffCreate):
    """Full replacement of a staff member's profile."""


# ---------------------------------------------------------------------------
# Walk-in borrowers
# ---------------------------------------------------------------------------

class WalkInProfile(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=3, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------

class BorrowRequest(BaseModel):
    book_id: int
    copies: int = Field(1, ge=1)
    contact_number: Optional[str] = Field(None, max_length=50)
    customer_id: Optional[int] = None  # staff borrowing on a customer's behalf


class WalkInBorrowRequest(BaseModel):
    book_id: int
    customer: WalkInProfile
    copies: int = Field(1, ge=1)


class ReturnRequest(BaseModel):
    book_id: int
    rating: Optional[int] = Field(None, ge=0, le=5)  # 0 means not rated
    copies_borrowed: Optional[int] = Field(None, ge=1)
    book_condition: Optional[BookCondition] = None


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

class FavoriteRequest(BaseModel):
    customer_id: int
    book_id: int
