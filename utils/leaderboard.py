"""Department and citizen standings derived from accumulated points."""
from __future__ import annotations

from typing import Dict, List

from sqlalchemy import func

from extensions import db
from models import DepartmentPointsAward, User
from utils.access import ActorContext
from utils.errors import PermissionDeniedError


def department_leaderboard() -> List[Dict]:
    total_points = func.coalesce(func.sum(DepartmentPointsAward.points_awarded), 0).label("total_points")
    actions_count = func.count(DepartmentPointsAward.id).label("actions_count")
    rows = (
        db.session.query(DepartmentPointsAward.department, total_points, actions_count)
        .group_by(DepartmentPointsAward.department)
        .order_by(total_points.desc(), DepartmentPointsAward.department.asc())
        .all()
    )
    return [
        {
            "department": row.department,
            "totalPoints": int(row.total_points or 0),
            "actionsCount": int(row.actions_count or 0),
            "rank": index + 1,
        }
        for index, row in enumerate(rows)
    ]


def department_leaderboard_for(actor: ActorContext) -> Dict:
    """Admins see every department; department accounts only their own row."""
    board = department_leaderboard()
    if actor.is_admin:
        visible = board
    elif actor.is_staff:
        visible = [entry for entry in board if entry["department"] == actor.department]
    else:
        raise PermissionDeniedError(detail=f"user {actor.user_id} requested the department leaderboard")
    return {"leaderboard": visible, "totalDepartments": len(board)}


def _ranked_users():
    return User.query.filter(User.is_admin.is_(False), User.is_department_user.is_(False))


def user_leaderboard(limit: int = 50) -> List[Dict]:
    users = _ranked_users().order_by(User.points.desc(), User.created_at.asc()).limit(limit).all()
    return [
        {
            "id": str(user.id),
            "username": user.username,
            "displayName": user.display_name,
            "avatarUri": user.avatar_uri,
            "points": user.points,
            "rank": index + 1,
            "submissions": user.submissions_count,
        }
        for index, user in enumerate(users)
    ]


def user_rank(user: User) -> int:
    ahead = _ranked_users().filter(User.points > user.points).count()
    return ahead + 1
