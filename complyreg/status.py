"""
complyreg Status State Machines

Submissions and reports share one shape:

    CREATED -> {TERMINAL_A | TERMINAL_B}

A single admin-gated transition, no reverse edge, and re-entry into a
terminal state is rejected. Each machine is an explicit table of allowed
predecessor states per target state.
"""

from enum import Enum
from typing import Dict, FrozenSet, Type, TypeVar, Union

from .errors import InvalidTransition

S = TypeVar("S", bound=Enum)


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReportStatus(str, Enum):
    GENERATED = "generated"
    FINALIZED = "finalized"


# target -> allowed predecessors
SUBMISSION_TRANSITIONS: Dict[SubmissionStatus, FrozenSet[SubmissionStatus]] = {
    SubmissionStatus.APPROVED: frozenset({SubmissionStatus.PENDING}),
    SubmissionStatus.REJECTED: frozenset({SubmissionStatus.PENDING}),
}

REPORT_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.FINALIZED: frozenset({ReportStatus.GENERATED}),
}


def parse_status(value: Union[str, Enum], status_type: Type[S]) -> S:
    """Parse a status label, raising InvalidTransition for unknown labels."""
    if isinstance(value, status_type):
        return value
    try:
        return status_type(value)
    except ValueError:
        valid = [s.value for s in status_type]
        raise InvalidTransition(
            f"unknown status '{value}'",
            requested=str(value),
            valid=valid,
        )


def advance(
    current: S,
    target: S,
    transitions: Dict[S, FrozenSet[S]],
) -> S:
    """
    Check a single transition against its table.

    Returns:
        The target state

    Raises:
        InvalidTransition: target has no incoming edge, or current is not
        an allowed predecessor of target
    """
    allowed = transitions.get(target)
    if allowed is None:
        raise InvalidTransition(
            f"'{target.value}' is not a reachable state",
            current=current.value,
            requested=target.value,
        )
    if current not in allowed:
        raise InvalidTransition(
            f"cannot move from '{current.value}' to '{target.value}'",
            current=current.value,
            requested=target.value,
        )
    return target
