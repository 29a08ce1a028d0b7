"""
backoffice_modules.banking.workflows
====================================

Responsibility:
    Declarative state machine for a bank reconciliation.  The service
    checks transitions against this graph; this module only declares it.

Architecture:
    Module layer.  Pure data declarations, no I/O.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A named condition that must hold for a transition."""

    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """
    A state machine definition.

    ``initial_state`` and every transition endpoint are members of ``states``.
    """

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    def transition_for(self, from_state: str, action: str) -> Transition | None:
        for transition in self.transitions:
            if transition.from_state == from_state and transition.action == action:
                return transition
        return None


ENDING_BALANCE_ENTERED = Guard(
    name="ending_balance_entered",
    description="Statement ending balance has been entered",
)

CLEARED_BALANCE_MATCHES_ENDING = Guard(
    name="cleared_balance_matches_ending",
    description="Cleared balance is within tolerance of the ending balance",
)

RECONCILIATION_WORKFLOW = Workflow(
    name="bank_reconciliation",
    description="Bank reconciliation: save progress, then reconcile",
    initial_state="in_progress",
    states=("in_progress", "completed"),
    transitions=(
        Transition("in_progress", "in_progress", action="save"),
        Transition(
            "in_progress",
            "completed",
            action="reconcile",
            guard=CLEARED_BALANCE_MATCHES_ENDING,
        ),
        # Re-finalizing the same period updates the completed row in place.
        Transition(
            "completed",
            "completed",
            action="reconcile",
            guard=CLEARED_BALANCE_MATCHES_ENDING,
        ),
    ),
)
