from datetime import timedelta

import pytest

from extensions import db
from models import Complaint, DepartmentPointsAward, Notification, StatusHistoryEntry, User
from tests.conftest import T0
from utils.access import ActorContext
from utils.errors import NotFoundError, PermissionDeniedError, RequestValidationError
from utils.status_engine import assign_department, reject_complaint, submit_complaint, transition_status

ADMIN = ActorContext(user_id="admin", is_admin=True)
ROADS = ActorContext(user_id="roads", is_department_user=True, department="Roads")
CITIZEN = ActorContext(user_id="citizen")


def _user(user_id):
    user = db.session.get(User, user_id)
    db.session.refresh(user)
    return user


def _history(complaint_id):
    return (
        StatusHistoryEntry.query.filter_by(complaint_id=complaint_id)
        .order_by(StatusHistoryEntry.date, StatusHistoryEntry.id)
        .all()
    )


def _new_complaint(citizen):
    return submit_complaint(
        db.session.get(User, citizen.id),
        title="Broken streetlight",
        description="Lamp post 14 has been dark for a week",
        category="lighting",
        location="5th Avenue",
        now=T0,
    ).id


def test_submit_records_first_ledger_entry(ctx, citizen):
    complaint_id = _new_complaint(citizen)

    complaint = db.session.get(Complaint, complaint_id)
    assert complaint.status == "submitted"
    assert complaint.points == 0
    assert [e.status for e in _history(complaint_id)] == ["submitted"]
    assert _user(citizen.id).submissions_count == 1
    notice = Notification.query.filter_by(complaint_id=complaint_id).one()
    assert notice.title == "Submission Received"
    assert notice.type == "success"


def test_assignment_awards_ten_points_and_starter_department_credit(ctx, citizen):
    complaint_id = _new_complaint(citizen)

    result = assign_department(ADMIN, complaint_id, "Roads", now=T0 + timedelta(hours=1))

    assert result.points_awarded == 10
    assert result.department_points_awarded == 5 + 2
    complaint = db.session.get(Complaint, complaint_id)
    assert (complaint.status, complaint.department, complaint.points) == ("assigned", "Roads", 10)
    assert _user(citizen.id).points == 10
    history = _history(complaint_id)
    assert [(e.status, e.department) for e in history] == [("submitted", None), ("assigned", "Roads")]
    assert "You earned 10 points!" in Notification.query.filter_by(title="Complaint Assigned").one().message


def test_progression_awards_only_the_increase(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Roads", now=T0)

    result = transition_status(ROADS, complaint_id, "in-progress", now=T0 + timedelta(hours=2))

    assert result.points_awarded == 15
    assert result.department_points_awarded == 10 + 6
    assert _user(citizen.id).points == 25
    assert db.session.get(Complaint, complaint_id).points == 25


def test_moving_back_awards_nothing_and_records_the_lower_tier(ctx, citizen):
    complaint_id = _new_complaint(citizen)

    first = transition_status(ADMIN, complaint_id, "completed", now=T0 + timedelta(hours=1))
    same = transition_status(ADMIN, complaint_id, "completed", now=T0 + timedelta(hours=2))
    back = transition_status(ADMIN, complaint_id, "resolved", now=T0 + timedelta(hours=3))

    assert (first.points_awarded, same.points_awarded, back.points_awarded) == (100, 0, 0)
    assert _user(citizen.id).points == 100
    complaint = db.session.get(Complaint, complaint_id)
    assert (complaint.status, complaint.points) == ("resolved", 50)

    again = transition_status(ADMIN, complaint_id, "completed", now=T0 + timedelta(hours=4))

    assert again.points_awarded == 50
    assert _user(citizen.id).points == 150
    assert db.session.get(Complaint, complaint_id).points == 100
    notices = Notification.query.filter(Notification.title.like("Status Updated%")).order_by(Notification.date).all()
    assert [n.type for n in notices] == ["success", "info", "info", "success"]


def test_reassignment_pays_the_flat_assignment_award(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    transition_status(ADMIN, complaint_id, "in-progress", department="Water", now=T0)

    result = assign_department(ADMIN, complaint_id, "Roads", now=T0 + timedelta(hours=1))

    assert result.points_awarded == 10
    assert _user(citizen.id).points == 25 + 10
    complaint = db.session.get(Complaint, complaint_id)
    assert (complaint.status, complaint.department, complaint.points) == ("assigned", "Roads", 10)
    notice = Notification.query.filter_by(title="Complaint Assigned").one()
    assert notice.message == "Your complaint has been assigned to Roads. You earned 10 points!"


def test_transition_without_department_awards_no_department_points(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    result = transition_status(ADMIN, complaint_id, "in-progress", now=T0)
    assert result.department_points_awarded == 0
    assert DepartmentPointsAward.query.count() == 0


def test_transition_can_set_department(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    result = transition_status(ADMIN, complaint_id, "in-progress", department="Water", now=T0)

    assert result.department_points_awarded == 10 + 2
    assert db.session.get(Complaint, complaint_id).department == "Water"
    assert _history(complaint_id)[-1].department == "Water"


def test_rejection_credits_department_but_not_user(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    complaint = db.session.get(Complaint, complaint_id)
    complaint.department = "Roads"
    db.session.commit()

    result = reject_complaint(ROADS, complaint_id, "Duplicate of an existing report", now=T0 + timedelta(hours=1))

    assert result.points_awarded == 0
    assert result.department_points_awarded == 2 + 2
    assert _user(citizen.id).points == 0
    complaint = db.session.get(Complaint, complaint_id)
    assert complaint.status == "rejected"
    assert complaint.rejection_reason == "Duplicate of an existing report"
    award = DepartmentPointsAward.query.filter_by(complaint_id=complaint_id).one()
    assert (award.department, award.status, award.points_awarded) == ("Roads", "rejected", 4)
    notice = Notification.query.filter_by(title="Complaint Rejected").one()
    assert notice.type == "warning"
    assert "Duplicate of an existing report" in notice.message


def test_rejection_keeps_points_already_earned(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Roads", now=T0)

    result = transition_status(ADMIN, complaint_id, "rejected", now=T0 + timedelta(hours=30))

    assert result.department_points_awarded == 2 + 2
    assert _user(citizen.id).points == 10
    assert db.session.get(Complaint, complaint_id).points == 10


def test_rejecting_again_without_reason_keeps_stored_reason(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Roads", now=T0)
    reject_complaint(ADMIN, complaint_id, "Private property", now=T0 + timedelta(hours=1))
    transition_status(ADMIN, complaint_id, "in-progress", now=T0 + timedelta(hours=2))

    transition_status(ADMIN, complaint_id, "rejected", now=T0 + timedelta(hours=3))

    complaint = db.session.get(Complaint, complaint_id)
    assert (complaint.status, complaint.rejection_reason) == ("rejected", "Private property")
    latest = Notification.query.filter_by(title="Complaint Rejected").order_by(Notification.date.desc()).first()
    assert "Private property" in latest.message


def test_latest_history_entry_matches_status_even_if_clock_goes_back(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Roads", now=T0 + timedelta(hours=5))
    transition_status(ADMIN, complaint_id, "in-progress", now=T0 + timedelta(hours=1))

    history = _history(complaint_id)
    dates = [e.date for e in history]
    assert dates == sorted(dates)
    assert history[-1].status == db.session.get(Complaint, complaint_id).status == "in-progress"


def test_missing_status_is_rejected_before_any_change(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    with pytest.raises(RequestValidationError):
        transition_status(ADMIN, complaint_id, "")
    with pytest.raises(RequestValidationError):
        transition_status(ADMIN, complaint_id, "escalated")
    assert len(_history(complaint_id)) == 1


def test_unknown_complaint_is_not_found(ctx):
    with pytest.raises(NotFoundError):
        transition_status(ADMIN, "does-not-exist", "assigned")
    with pytest.raises(NotFoundError):
        reject_complaint(ADMIN, "does-not-exist")
    with pytest.raises(NotFoundError):
        assign_department(ADMIN, "does-not-exist", "Roads")


def test_assignment_requires_department_and_admin(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    with pytest.raises(RequestValidationError):
        assign_department(ADMIN, complaint_id, "  ")
    with pytest.raises(PermissionDeniedError):
        assign_department(ROADS, complaint_id, "Roads")
    assert db.session.get(Complaint, complaint_id).status == "submitted"


def test_department_scope_is_enforced(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Water", now=T0)

    with pytest.raises(PermissionDeniedError):
        transition_status(ROADS, complaint_id, "in-progress")
    with pytest.raises(PermissionDeniedError):
        reject_complaint(ROADS, complaint_id)
    with pytest.raises(PermissionDeniedError):
        transition_status(CITIZEN, complaint_id, "completed")
    assert db.session.get(Complaint, complaint_id).status == "assigned"


def test_department_user_cannot_move_complaint_elsewhere(ctx, citizen):
    complaint_id = _new_complaint(citizen)
    assign_department(ADMIN, complaint_id, "Roads", now=T0)

    with pytest.raises(PermissionDeniedError):
        transition_status(ROADS, complaint_id, "in-progress", department="Water")
    result = transition_status(ROADS, complaint_id, "in-progress", department="Roads", now=T0 + timedelta(hours=1))
    assert result.points_awarded == 15
