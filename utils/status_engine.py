"""Complaint status lifecycle: ledger entries, submitter points, and department credit.

Every public operation here runs as one unit of work: the complaint update,
the status-history append, the submitter's points increment, the department
award and the notification are committed together or not at all.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import COMPLAINT_STATUSES, Complaint, StatusHistoryEntry, User
from utils.access import ActorContext
from utils.clock import utc_now
from utils.department_points import award_department_points
from utils.errors import InternalServiceError, NotFoundError, RequestValidationError
from utils.notifications import notify, rejection_message, status_message
from utils.points import ASSIGNMENT_POINTS, user_points_delta, user_status_points


@dataclass
class TransitionResult:
    complaint: Complaint
    points_awarded: int = 0
    department_points_awarded: int = 0

    def to_payload(self) -> dict:
        return {
            "pointsAwarded": self.points_awarded,
            "departmentPointsAwarded": self.department_points_awarded,
        }


def get_complaint(complaint_id) -> Complaint:
    complaint = db.session.get(Complaint, str(complaint_id)) if complaint_id else None
    if complaint is None:
        raise NotFoundError("Complaint not found", detail=f"complaint {complaint_id} does not exist")
    return complaint


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _append_history(complaint: Complaint, status: str, department: Optional[str], now: datetime) -> StatusHistoryEntry:
    # Ledger dates never go backwards, even if the clock does.
    last = complaint.status_history[-1] if complaint.status_history else None
    entry_date = max(now, last.date) if last is not None and last.date else now
    entry = StatusHistoryEntry(complaint=complaint, status=status, department=department, date=entry_date)
    db.session.add(entry)
    return entry


def _credit_user(user_id: str, points: int) -> None:
    if points <= 0:
        return
    db.session.query(User).filter(User.id == user_id).update({User.points: User.points + points})


@contextmanager
def _unit_of_work(operation: str, complaint_id) -> Iterator[None]:
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(
            "status_transition_failed", extra={"operation": operation, "complaint_id": str(complaint_id)}
        )
        raise InternalServiceError(detail=str(exc)) from exc
    except Exception:
        db.session.rollback()
        raise


def _log_applied(operation: str, complaint: Complaint, result: TransitionResult) -> None:
    current_app.logger.info(
        "status_transition_applied",
        extra={
            "operation": operation,
            "complaint_id": str(complaint.id),
            "status": complaint.status,
            "department": complaint.department,
            "points_awarded": result.points_awarded,
            "department_points_awarded": result.department_points_awarded,
        },
    )


def submit_complaint(
    user: User,
    *,
    title: str,
    description: str,
    category: str,
    location: Optional[str] = None,
    latitude=None,
    longitude=None,
    image_uri: Optional[str] = None,
    ai_categorized: bool = False,
    now: Optional[datetime] = None,
) -> Complaint:
    """Create a complaint in ``submitted`` with zero points and its first ledger entry."""
    now = now or utc_now()
    complaint = Complaint(
        user_id=user.id,
        title=title,
        description=description,
        category=category,
        location=location,
        latitude=latitude,
        longitude=longitude,
        image_uri=image_uri,
        ai_categorized=bool(ai_categorized),
        status="submitted",
        points=0,
        created_at=now,
        updated_at=now,
    )
    with _unit_of_work("submit", None):
        db.session.add(complaint)
        db.session.flush()
        _append_history(complaint, "submitted", None, now)
        notify(
            user.id,
            "Submission Received",
            f'Your complaint "{title}" has been submitted successfully.',
            type_="success",
            complaint_id=complaint.id,
            now=now,
        )
        db.session.query(User).filter(User.id == user.id).update(
            {User.submissions_count: User.submissions_count + 1}
        )
    current_app.logger.info("complaint_submitted", extra={"complaint_id": str(complaint.id), "user_id": str(user.id)})
    return complaint


def _reject(complaint: Complaint, reason: Optional[str], department: Optional[str], now: datetime) -> TransitionResult:
    complaint_id = complaint.id
    with _unit_of_work("reject", complaint_id):
        complaint.status = "rejected"
        if reason:
            complaint.rejection_reason = reason
        if department:
            complaint.department = department
        complaint.updated_at = now
        _append_history(complaint, "rejected", complaint.department, now)
        notify(
            complaint.user_id,
            "Complaint Rejected",
            rejection_message(complaint.rejection_reason),
            type_="warning",
            complaint_id=complaint_id,
            now=now,
        )
        department_points = award_department_points(complaint_id, complaint.department, "rejected", now)
    result = TransitionResult(complaint, points_awarded=0, department_points_awarded=department_points)
    _log_applied("reject", complaint, result)
    return result


def transition_status(
    actor: ActorContext,
    complaint_id,
    new_status: Optional[str],
    department: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Move a complaint to ``new_status``, crediting the submitter and the department.

    The submitter earns only the increase over the complaint's recorded
    points, so lateral or backward moves award nothing; the recorded points
    then follow the new status. Moving to ``rejected`` follows the rejection
    path.
    """
    new_status = _clean(new_status)
    department = _clean(department)
    if not new_status:
        raise RequestValidationError("Status is required")
    if new_status not in COMPLAINT_STATUSES:
        raise RequestValidationError("Unknown status", detail=f"unknown status {new_status!r}")

    complaint = get_complaint(complaint_id)
    actor.ensure_can_act_on(complaint)
    actor.ensure_department_change_allowed(department)
    now = now or utc_now()

    if new_status == "rejected":
        return _reject(complaint, None, department, now)

    complaint_id = complaint.id
    with _unit_of_work("update-status", complaint_id):
        points_to_add = user_points_delta(new_status, complaint.points)
        complaint.status = new_status
        complaint.points = user_status_points(new_status)
        if department:
            complaint.department = department
        complaint.updated_at = now

        _append_history(complaint, new_status, complaint.department, now)
        _credit_user(complaint.user_id, points_to_add)
        notify(
            complaint.user_id,
            f"Status Updated: {new_status}",
            status_message(new_status),
            type_="success" if points_to_add > 0 else "info",
            complaint_id=complaint_id,
            now=now,
        )
        department_points = award_department_points(complaint_id, complaint.department, new_status, now)

    result = TransitionResult(complaint, points_awarded=points_to_add, department_points_awarded=department_points)
    _log_applied("update-status", complaint, result)
    return result


def assign_department(
    actor: ActorContext,
    complaint_id,
    department: Optional[str],
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Route a complaint to a department and pay the submitter the flat assignment award."""
    actor.ensure_admin()
    department = _clean(department)
    if not department:
        raise RequestValidationError("Department is required")
    complaint = get_complaint(complaint_id)
    now = now or utc_now()

    complaint_id = complaint.id
    with _unit_of_work("assign-department", complaint_id):
        points_to_add = ASSIGNMENT_POINTS
        complaint.status = "assigned"
        complaint.department = department
        complaint.points = ASSIGNMENT_POINTS
        complaint.updated_at = now

        _append_history(complaint, "assigned", department, now)
        _credit_user(complaint.user_id, points_to_add)
        message = f"Your complaint has been assigned to {department}. You earned {points_to_add} points!"
        notify(complaint.user_id, "Complaint Assigned", message, type_="info", complaint_id=complaint_id, now=now)
        department_points = award_department_points(complaint_id, department, "assigned", now)

    result = TransitionResult(complaint, points_awarded=points_to_add, department_points_awarded=department_points)
    _log_applied("assign-department", complaint, result)
    return result


def reject_complaint(
    actor: ActorContext,
    complaint_id,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Close a complaint as rejected: no submitter points, department still credited."""
    complaint = get_complaint(complaint_id)
    actor.ensure_can_act_on(complaint)
    return _reject(complaint, _clean(reason), None, now or utc_now())
