"""
Canonical workflow types (``warehouse_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Purchase orders, delivery
orders and receipt items declare their lifecycles with these types so that
Guard, Transition and Workflow are defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only; the orchestrator evaluates the condition.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    requires_approval: bool = False


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
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} is not a state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references an unknown state"
                )

    def find_transition(self, from_state: str, to_state: str) -> Transition | None:
        """Return the transition from ``from_state`` to ``to_state``, if declared."""
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def can_transition(self, from_state: str, to_state: str) -> bool:
        return self.find_transition(from_state, to_state) is not None
