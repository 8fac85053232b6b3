from datetime import timedelta

import pytest

from extensions import db
from models import DepartmentPointsAward, User
from tests.conftest import T0
from utils.access import ActorContext
from utils.errors import PermissionDeniedError
from utils.leaderboard import department_leaderboard, department_leaderboard_for, user_leaderboard, user_rank


@pytest.fixture
def awards(ctx, citizen, make_complaint):
    rows = [("A", "assigned", 20), ("A", "in-progress", 10), ("B", "assigned", 5)]
    for index, (department, status, points) in enumerate(rows):
        complaint_id = make_complaint(citizen.id, department=department)
        db.session.add(
            DepartmentPointsAward(
                complaint_id=complaint_id,
                department=department,
                status=status,
                points_awarded=points,
                date=T0 + timedelta(minutes=index),
            )
        )
    db.session.commit()


def test_departments_ranked_by_total_points(awards):
    board = department_leaderboard()
    assert board == [
        {"department": "A", "totalPoints": 30, "actionsCount": 2, "rank": 1},
        {"department": "B", "totalPoints": 5, "actionsCount": 1, "rank": 2},
    ]


def test_ties_are_ordered_by_department_name(ctx, citizen, make_complaint):
    for department in ("Water", "Parks"):
        complaint_id = make_complaint(citizen.id, department=department)
        db.session.add(
            DepartmentPointsAward(
                complaint_id=complaint_id, department=department, status="assigned", points_awarded=7, date=T0
            )
        )
    db.session.commit()

    assert [row["department"] for row in department_leaderboard()] == ["Parks", "Water"]


def test_empty_leaderboard(ctx):
    assert department_leaderboard() == []


def test_admin_sees_every_department(awards):
    result = department_leaderboard_for(ActorContext(user_id="admin", is_admin=True))
    assert [row["department"] for row in result["leaderboard"]] == ["A", "B"]
    assert result["totalDepartments"] == 2


def test_department_user_sees_only_own_row(awards):
    result = department_leaderboard_for(ActorContext(user_id="b", is_department_user=True, department="B"))
    assert result["leaderboard"] == [{"department": "B", "totalPoints": 5, "actionsCount": 1, "rank": 2}]
    assert result["totalDepartments"] == 2


def test_department_without_awards_sees_empty_list(awards):
    result = department_leaderboard_for(ActorContext(user_id="c", is_department_user=True, department="Parks"))
    assert result == {"leaderboard": [], "totalDepartments": 2}


def test_citizens_cannot_view_department_leaderboard(awards):
    with pytest.raises(PermissionDeniedError):
        department_leaderboard_for(ActorContext(user_id="citizen"))


def test_user_leaderboard_excludes_staff_accounts(ctx, make_user, admin, roads_officer):
    low = make_user(points=15)
    high = make_user(points=120)
    db.session.query(User).filter(User.id.in_([admin.id, roads_officer.id])).update(
        {User.points: 999}, synchronize_session=False
    )
    db.session.commit()

    board = user_leaderboard()
    assert [row["id"] for row in board] == [high.id, low.id]
    assert [row["rank"] for row in board] == [1, 2]
    assert board[0]["points"] == 120


def test_user_leaderboard_respects_limit(ctx, make_user):
    for points in (10, 20, 30):
        make_user(points=points)
    assert [row["points"] for row in user_leaderboard(limit=2)] == [30, 20]


def test_user_rank_counts_citizens_ahead(ctx, make_user):
    make_user(points=50)
    make_user(points=50)
    middle = make_user(points=20)
    make_user(points=5)

    assert user_rank(db.session.get(User, middle.id)) == 3
    newcomer = make_user()
    assert user_rank(db.session.get(User, newcomer.id)) == 5
