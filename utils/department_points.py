"""Department points engine: one timeliness-weighted award per (complaint, status)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import DepartmentPointsAward
from utils.clock import utc_now
from utils.errors import AwardConflictError
from utils.points import DEPARTMENT_BASE_POINTS, department_award_points


def award_exists(complaint_id: str, status: str) -> bool:
    return (
        db.session.query(DepartmentPointsAward.id)
        .filter_by(complaint_id=complaint_id, status=status)
        .first()
        is not None
    )


def latest_award(complaint_id: str) -> Optional[DepartmentPointsAward]:
    return (
        DepartmentPointsAward.query.filter_by(complaint_id=complaint_id)
        .order_by(DepartmentPointsAward.date.desc(), DepartmentPointsAward.id.desc())
        .first()
    )


def record_award(
    complaint_id: str,
    department: str,
    status: str,
    points: int,
    awarded_at: datetime,
    *,
    commit: bool = False,
) -> DepartmentPointsAward:
    """Insert an award row.

    With ``commit=False`` the insert runs inside a savepoint of the caller's
    transaction; with ``commit=True`` it is committed on its own. A violation
    of the (complaint, status) uniqueness constraint raises
    :class:`AwardConflictError` and leaves the surrounding work intact; any
    other integrity failure propagates unchanged.
    """
    award = DepartmentPointsAward(
        complaint_id=complaint_id,
        department=department,
        status=status,
        points_awarded=points,
        date=awarded_at,
    )
    try:
        if commit:
            db.session.add(award)
            db.session.commit()
        else:
            with db.session.begin_nested():
                db.session.add(award)
    except IntegrityError as exc:
        if commit:
            db.session.rollback()
        if award_exists(complaint_id, status):
            raise AwardConflictError(detail=f"{complaint_id}:{status} already awarded") from exc
        raise
    return award


def award_department_points(
    complaint_id: str,
    department: Optional[str],
    status: str,
    now: Optional[datetime] = None,
) -> int:
    """Credit ``department`` for moving ``complaint_id`` to ``status``.

    Returns the points awarded, or 0 when nothing was recorded: unknown
    department, a status without a base value, or an award that already
    exists for this complaint and status. Does not commit.
    """
    if not department:
        return 0
    if DEPARTMENT_BASE_POINTS.get(status, 0) <= 0:
        return 0
    if award_exists(complaint_id, status):
        return 0

    now = now or utc_now()
    previous = latest_award(complaint_id)
    points = department_award_points(status, previous.date if previous else None, now)

    try:
        record_award(complaint_id, department, status, points, now)
    except AwardConflictError:
        current_app.logger.info(
            "department_points_conflict",
            extra={"complaint_id": complaint_id, "status": status, "department": department},
        )
        return 0

    current_app.logger.info(
        "department_points_awarded",
        extra={"complaint_id": complaint_id, "status": status, "department": department, "points": points},
    )
    return points
