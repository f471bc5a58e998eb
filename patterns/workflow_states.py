"""Enum-based state machine pattern.

Defines lifecycle states as Python enums with explicit transition validation.
A machine is just a transition table: {current_state: [allowed_next_states]}.
States with no outgoing transitions are terminal.

Used by the loan ledger (Borrowed -> Returned).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

StateT = TypeVar("StateT", bound=Enum)


class TransitionError(ValueError):
    """Raised when a transition is not allowed from the current state."""


@dataclass(frozen=True)
class StateMachine(Generic[StateT]):
    """A transition table with guards.

    Usage::

        lifecycle = StateMachine(
            name="loan",
            transitions={
                LoanStatus.BORROWED: [LoanStatus.RETURNED],
                LoanStatus.RETURNED: [],
            },
        )
        lifecycle.ensure(loan.status, LoanStatus.RETURNED)
    """

    name: str
    transitions: dict[StateT, list[StateT]]

    def allowed(self, current: StateT) -> list[StateT]:
        return list(self.transitions.get(current, []))

    def can_transition(self, current: StateT, to_state: StateT) -> bool:
        """Check if a transition is allowed from the current state."""
        return to_state in self.transitions.get(current, [])

    def ensure(self, current: StateT, to_state: StateT) -> StateT:
        """Validate a transition and return the new state.

        Raises TransitionError if the transition is not allowed.
        """
        if not self.can_transition(current, to_state):
            allowed_names = [s.value for s in self.allowed(current)]
            raise TransitionError(
                f"Cannot move {self.name} from {current.value} to {to_state.value}. "
                f"Allowed: {allowed_names}"
            )
        return to_state

    def is_terminal(self, state: StateT) -> bool:
        """Check if the state has no outgoing transitions."""
        return len(self.transitions.get(state, [])) == 0
