"""
Canonical workflow types (``erp_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines (bill payment status,
bill approval, invoice payment status, service tickets).  Each module
declares its workflows once in its ``workflows.py``; services ask the
workflow for the target state of an action instead of hard-coding status
assignments.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from erp_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A named precondition of a transition.

    Non-goals: does not evaluate the condition -- the owning service does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition.

    ``posts_entry=True`` marks transitions that write a journal entry;
    ``requires_role`` names the role allowed to fire it, if restricted.
    """
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    posts_entry: bool = False
    requires_role: str | None = None


def _state(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"{self.name}: initial state {self.initial_state} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t.action} references an unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"{self.name}: terminal state {t.from_state} has a transition")

    def find(self, from_state: str | Enum, action: str) -> Transition | None:
        current = _state(from_state)
        for t in self.transitions:
            if t.from_state == current and t.action == action:
                return t
        return None

    def transition(self, from_state: str | Enum, action: str) -> Transition:
        """The transition for ``action`` from ``from_state``; raises if none."""
        found = self.find(from_state, action)
        if found is None:
            raise InvalidTransitionError(self.name, _state(from_state), action)
        return found

    def actions_from(self, from_state: str | Enum) -> tuple[str, ...]:
        current = _state(from_state)
        return tuple(t.action for t in self.transitions if t.from_state == current)
