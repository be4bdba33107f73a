# opd_core/visits/workflow.py
"""
Visit state machine: legal transitions, routing decisions and the
status -> department queue mapping. No database access here.
"""
from __future__ import annotations

from opd_core.common.errors import InvalidTransition
from opd_core.notifications import topics
from opd_core.visits.models import VisitStatus


class Queue:
    DOCTOR = "doctor"
    LAB = "lab"
    PHARMACY = "pharmacy"


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    VisitStatus.PATIENT_REGISTERED: frozenset(
        {VisitStatus.AWAITING_LAB, VisitStatus.PHARMACY_PENDING, VisitStatus.COMPLETED}
    ),
    VisitStatus.AWAITING_LAB: frozenset({VisitStatus.LAB_REPORTS_SUBMITTED}),
    VisitStatus.LAB_REPORTS_SUBMITTED: frozenset({VisitStatus.PHARMACY_PENDING, VisitStatus.COMPLETED}),
    VisitStatus.PHARMACY_PENDING: frozenset({VisitStatus.COMPLETED}),
    VisitStatus.COMPLETED: frozenset(),
}

# COMPLETED is the only status without a queue.
STATUS_QUEUE: dict[str, str | None] = {
    VisitStatus.PATIENT_REGISTERED: Queue.DOCTOR,
    VisitStatus.AWAITING_LAB: Queue.LAB,
    VisitStatus.LAB_REPORTS_SUBMITTED: Queue.DOCTOR,
    VisitStatus.PHARMACY_PENDING: Queue.PHARMACY,
    VisitStatus.COMPLETED: None,
}

QUEUE_TOPICS: dict[str, str] = {
    Queue.DOCTOR: topics.DOCTOR_QUEUE,
    Queue.LAB: topics.LAB_QUEUE,
    Queue.PHARMACY: topics.PHARMACY_QUEUE,
}

DOCTOR_QUEUE_LABELS: dict[str, str] = {
    VisitStatus.PATIENT_REGISTERED: "New Patient",
    VisitStatus.LAB_REPORTS_SUBMITTED: "Lab Reports Ready",
}

# Actions that leave the status untouched, mapped to the statuses they are allowed in.
STATUS_PRESERVING_ACTIONS: dict[str, frozenset[str]] = {
    "update_diagnosis": frozenset({VisitStatus.LAB_REPORTS_SUBMITTED}),
    "upload_report": frozenset({VisitStatus.AWAITING_LAB}),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def assert_transition(from_status: str, to_status: str, *, action: str = "") -> None:
    if not can_transition(from_status, to_status):
        raise InvalidTransition(
            f"Cannot move visit from {from_status} to {to_status}.",
            details={"action": action, "from_status": from_status, "to_status": to_status},
        )


def assert_status(current: str, allowed, *, action: str) -> None:
    """Guard for an action that is only legal from the given source statuses."""
    allowed = frozenset(allowed)
    if current not in allowed:
        raise InvalidTransition(
            f"Visit is {current}; '{action}' requires {' or '.join(sorted(allowed))}.",
            details={"action": action, "status": current, "allowed": sorted(allowed)},
        )


def route_after_consultation(*, has_lab_order: bool, has_pending_medicines: bool) -> str:
    """
    Lab orders win: medicines recorded alongside a lab order wait until the
    post-lab review sends the visit to the pharmacy.
    """
    if has_lab_order:
        return VisitStatus.AWAITING_LAB
    if has_pending_medicines:
        return VisitStatus.PHARMACY_PENDING
    return VisitStatus.COMPLETED


def route_after_post_lab_review(*, has_pending_medicines: bool) -> str:
    if has_pending_medicines:
        return VisitStatus.PHARMACY_PENDING
    return VisitStatus.COMPLETED


def queue_for_status(status: str) -> str | None:
    return STATUS_QUEUE.get(status)


def topics_for_transition(from_status: str | None, to_status: str) -> tuple[str, ...]:
    """Topics whose projections change when a visit moves between statuses."""
    out: list[str] = []
    for status in (from_status, to_status):
        queue = queue_for_status(status) if status else None
        if queue and QUEUE_TOPICS[queue] not in out:
            out.append(QUEUE_TOPICS[queue])
    return tuple(out)
