"""Reconstruct department awards from the status-history ledger.

Bonuses are computed from the recorded dates of consecutive awarded events,
never from the time the job runs, so replaying history yields the same rows
the live engine would have written. Re-running is a no-op once every
eligible status has an award.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Complaint, DepartmentPointsAward, StatusHistoryEntry
from utils.access import ActorContext
from utils.department_points import record_award
from utils.errors import AwardConflictError
from utils.leaderboard import department_leaderboard
from utils.points import DEPARTMENT_BASE_POINTS, department_award_points


@dataclass
class BackfillReport:
    complaints_processed: int = 0
    rows_inserted: int = 0
    failures: List[Dict] = field(default_factory=list)
    leaderboard: List[Dict] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "complaintsProcessed": self.complaints_processed,
            "rowsInserted": self.rows_inserted,
            "failures": self.failures,
            "leaderboard": self.leaderboard,
        }


def _complaints_with_department() -> List[str]:
    rows = (
        db.session.query(Complaint.id)
        .filter(Complaint.department.isnot(None), Complaint.department != "")
        .order_by(Complaint.created_at.asc(), Complaint.id.asc())
        .all()
    )
    return [row.id for row in rows]


def existing_awards(complaint_id: str) -> List[DepartmentPointsAward]:
    return (
        DepartmentPointsAward.query.filter_by(complaint_id=complaint_id)
        .order_by(DepartmentPointsAward.date.asc(), DepartmentPointsAward.id.asc())
        .all()
    )


def _history(complaint_id: str) -> List[StatusHistoryEntry]:
    return (
        StatusHistoryEntry.query.filter_by(complaint_id=complaint_id)
        .order_by(StatusHistoryEntry.date.asc(), StatusHistoryEntry.id.asc())
        .all()
    )


def backfill_complaint(complaint_id: str, report: BackfillReport) -> int:
    """Insert the missing awards for one complaint; returns rows inserted.

    Each row is committed as it is written and counted on ``report``
    straight away, so rows kept before a later failure are still reported.
    """
    complaint = db.session.get(Complaint, complaint_id)
    if complaint is None or not complaint.department:
        return 0
    fallback_department = complaint.department

    awards = existing_awards(complaint_id)
    awarded_statuses = {award.status for award in awards}
    prev_award_date = awards[-1].date if awards else None

    # Plain values so per-row commits and rollbacks never touch expired rows.
    events = [(entry.status, entry.department, entry.date) for entry in _history(complaint_id)]

    inserted = 0
    for status, snapshot_department, event_date in events:
        if status not in DEPARTMENT_BASE_POINTS or status in awarded_statuses:
            continue
        department = snapshot_department or fallback_department
        if not department:
            continue
        points = department_award_points(status, prev_award_date, event_date)
        if points <= 0:
            continue
        try:
            record_award(complaint_id, department, status, points, event_date, commit=True)
        except AwardConflictError:
            # A live award won the race; its row stands.
            current_app.logger.info(
                "backfill_award_conflict", extra={"complaint_id": complaint_id, "status": status}
            )
            awarded_statuses.add(status)
            continue
        inserted += 1
        report.rows_inserted += 1
        awarded_statuses.add(status)
        prev_award_date = event_date
    return inserted


def run_backfill(actor: ActorContext) -> BackfillReport:
    """Replay every routed complaint's history through the department scoring rules.

    Admin only. A failure on one complaint is rolled back, logged and
    reported with the rows it had already committed; the remaining
    complaints are still processed.
    """
    actor.ensure_admin()
    report = BackfillReport()
    for complaint_id in _complaints_with_department():
        rows_before = report.rows_inserted
        try:
            backfill_complaint(complaint_id, report)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("backfill_complaint_failed", extra={"complaint_id": complaint_id})
            report.failures.append(
                {
                    "complaint_id": complaint_id,
                    "error": exc.__class__.__name__,
                    "rows_inserted": report.rows_inserted - rows_before,
                }
            )
            continue
        report.complaints_processed += 1

    report.leaderboard = department_leaderboard()
    current_app.logger.info(
        "backfill_completed",
        extra={
            "user_id": actor.user_id,
            "complaints_processed": report.complaints_processed,
            "rows_inserted": report.rows_inserted,
            "failed": len(report.failures),
        },
    )
    return report
