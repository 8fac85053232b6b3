from datetime import timedelta

import pytest

from extensions import db
from models import DepartmentPointsAward
from tests.conftest import T0
from utils import department_points
from utils.department_points import award_department_points


def _awards(complaint_id):
    return (
        DepartmentPointsAward.query.filter_by(complaint_id=complaint_id)
        .order_by(DepartmentPointsAward.date)
        .all()
    )


def test_award_is_idempotent_per_complaint_and_status(ctx, citizen, make_complaint):
    complaint_id = make_complaint(citizen.id, department="Roads")

    first = award_department_points(complaint_id, "Roads", "resolved", now=T0)
    second = award_department_points(complaint_id, "Roads", "resolved", now=T0 + timedelta(minutes=5))
    db.session.commit()

    assert first == 20 + 2
    assert second == 0
    rows = DepartmentPointsAward.query.filter_by(complaint_id=complaint_id, status="resolved").all()
    assert len(rows) == 1
    assert rows[0].points_awarded == 22


@pytest.mark.parametrize(
    "elapsed,bonus",
    [
        (timedelta(minutes=30), 10),
        (timedelta(hours=3), 6),
        (timedelta(hours=12), 4),
        (timedelta(hours=30), 2),
        (timedelta(hours=72), 0),
    ],
)
def test_bonus_measures_time_since_previous_award(ctx, citizen, make_complaint, elapsed, bonus):
    complaint_id = make_complaint(citizen.id, department="Roads")
    assert award_department_points(complaint_id, "Roads", "assigned", now=T0) == 5 + 2

    awarded = award_department_points(complaint_id, "Roads", "resolved", now=T0 + elapsed)
    db.session.commit()

    assert awarded == 20 + bonus
    resolved = _awards(complaint_id)[-1]
    assert resolved.status == "resolved"
    assert resolved.date == T0 + elapsed


def test_previous_award_is_latest_across_statuses(ctx, citizen, make_complaint):
    complaint_id = make_complaint(citizen.id, department="Roads")
    award_department_points(complaint_id, "Roads", "assigned", now=T0)
    award_department_points(complaint_id, "Roads", "in-progress", now=T0 + timedelta(hours=40))

    # 30 minutes after in-progress, not 40.5 hours after assignment.
    assert award_department_points(complaint_id, "Roads", "resolved", now=T0 + timedelta(hours=40, minutes=30)) == 30


def test_missing_department_awards_nothing(ctx, citizen, make_complaint):
    complaint_id = make_complaint(citizen.id)
    assert award_department_points(complaint_id, None, "assigned", now=T0) == 0
    assert award_department_points(complaint_id, "", "assigned", now=T0) == 0
    assert _awards(complaint_id) == []


def test_status_without_base_points_is_noop(ctx, citizen, make_complaint):
    complaint_id = make_complaint(citizen.id, department="Roads")
    assert award_department_points(complaint_id, "Roads", "submitted", now=T0) == 0
    assert _awards(complaint_id) == []


def test_rejection_earns_processing_credit(ctx, citizen, make_complaint):
    complaint_id = make_complaint(citizen.id, department="Roads")
    assert award_department_points(complaint_id, "Roads", "rejected", now=T0) == 2 + 2


def test_losing_a_concurrent_insert_is_a_noop(ctx, citizen, make_complaint, monkeypatch):
    complaint_id = make_complaint(citizen.id, department="Roads")
    award_department_points(complaint_id, "Roads", "resolved", now=T0)
    db.session.commit()

    real_exists = department_points.award_exists
    calls = []

    def stale_then_real(cid, status):
        calls.append(status)
        # First lookup misses the row, as if a concurrent writer committed after our check.
        return False if len(calls) == 1 else real_exists(cid, status)

    monkeypatch.setattr(department_points, "award_exists", stale_then_real)

    assert award_department_points(complaint_id, "Roads", "resolved", now=T0 + timedelta(hours=1)) == 0
    db.session.commit()
    assert len(_awards(complaint_id)) == 1
