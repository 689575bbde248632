"""
Audit report lifecycle.

    pending -> running -> completed
       |          |
       +----------+----> failed

Transitions only move forward; completed and failed are final.
"""

from typing import Dict, FrozenSet

from auditflow.database.models import ReportStatus, TERMINAL_REPORT_STATUSES
from auditflow.errors import StateError

ALLOWED_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.RUNNING, ReportStatus.FAILED}),
    ReportStatus.RUNNING: frozenset({ReportStatus.COMPLETED, ReportStatus.FAILED}),
    ReportStatus.COMPLETED: frozenset(),
    ReportStatus.FAILED: frozenset(),
}


def is_terminal(status: ReportStatus) -> bool:
    return status in TERMINAL_REPORT_STATUSES


def can_transition(current: ReportStatus, target: ReportStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(current: ReportStatus, target: ReportStatus) -> None:
    """
    Raises:
        StateError: if `current -> target` is not a forward transition
    """
    if not can_transition(current, target):
        raise StateError(
            f"Cannot move report from {current.value} to {target.value}",
            {"from": current.value, "to": target.value},
        )
