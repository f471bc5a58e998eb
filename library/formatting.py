"""Display formatting for dates and amounts handed to callers."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from library.config import config

ONE_DECIMAL = Decimal("0.1")


def format_date(value: date | datetime | None) -> str | None:
    """Render a calendar date as e.g. "Oct 19, 2026"."""
    if value is None:
        return None
    return value.strftime(config.date_format)


def format_timestamp(value: datetime | None) -> str | None:
    """Render a timestamp as e.g. "Oct 19, 2026 03:04 PM"."""
    if value is None:
        return None
    return value.strftime(config.timestamp_format)


def round_rating(value) -> Decimal | None:
    """Round an average rating half-up to one decimal place."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None
