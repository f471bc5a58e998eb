"""Caller identity middleware using ContextVar.

Authentication happens upstream; by the time a request reaches this app the
gateway has set X-Caller-Role and X-Caller-ID. The identity is stored in a
ContextVar so that any downstream code can call get_current_caller() without
explicit parameter passing.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ROLES = ("admin", "staff", "customer")


@dataclass(frozen=True)
class Caller:
    role: Optional[str] = None
    caller_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_staff(self) -> bool:
        """Admins are staff too."""
        return self.role in ("staff", "admin")

    @property
    def is_customer(self) -> bool:
        return self.role == "customer"


ANONYMOUS = Caller()

# ---------------------------------------------------------------------------
# Context variable: task-local caller state
# ---------------------------------------------------------------------------

_current_caller: ContextVar[Caller] = ContextVar("current_caller", default=ANONYMOUS)


def get_current_caller() -> Caller:
    """Return the caller for the current request.

    Safe to call from any async context within the request lifecycle::

        caller = get_current_caller()
        if caller.is_customer:
            loans = await reporting.list_customer_loans(caller.caller_id)
    """
    return _current_caller.get()


def parse_caller(role: Optional[str], caller_id: Optional[str]) -> Caller:
    """Build a Caller from raw header values; malformed values mean anonymous."""
    role = (role or "").strip().lower()
    if role not in ROLES:
        return ANONYMOUS
    try:
        parsed_id = int(caller_id) if caller_id else None
    except ValueError:
        return ANONYMOUS
    return Caller(role=role, caller_id=parsed_id)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class CallerMiddleware(BaseHTTPMiddleware):
    """Extract the caller from X-Caller-Role / X-Caller-ID headers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        caller = parse_caller(
            request.headers.get("X-Caller-Role"),
            request.headers.get("X-Caller-ID"),
        )
        token = _current_caller.set(caller)
        try:
            response = await call_next(request)
            return response
        finally:
            _current_caller.reset(token)
