"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- IdentityMixin: Integer primary key
- TimestampMixin: created_at / updated_at audit columns

Timestamps are filled in Python rather than by the server so that freshly
flushed rows can be serialised without a refresh round-trip, which an async
session cannot do implicitly.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all library models."""
    pass


class IdentityMixin:
    """Numeric, stable, immutable primary key."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    """Mixin providing standard audit columns.

    Adds:
    - created_at: Timestamp set on insert
    - updated_at: Timestamp updated on every change
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
