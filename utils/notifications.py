"""User-facing notifications written alongside complaint updates."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from extensions import db
from models import NOTIFICATION_TYPES, Notification
from utils.clock import utc_now

STATUS_MESSAGES: dict[str, str] = {
    "assigned": "Your complaint has been assigned and is being reviewed",
    "in-progress": "Work has started on your complaint",
    "resolved": "Your complaint has been resolved",
    "completed": "Your complaint has been completed",
}

REJECTION_MESSAGE = "Your complaint has been reviewed and rejected. No points awarded."


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, f"Your complaint status has been updated to {status}")


def rejection_message(reason: Optional[str]) -> str:
    if reason:
        return f"{REJECTION_MESSAGE} Reason: {reason}"
    return REJECTION_MESSAGE


def notify(
    user_id: str,
    title: str,
    message: str,
    *,
    type_: str = "info",
    complaint_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Notification:
    """Queue a notification in the caller's transaction; delivery is the client's job."""
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError("Invalid notification type")
    notification = Notification(
        user_id=user_id,
        complaint_id=complaint_id,
        title=title,
        message=message,
        type=type_,
        date=now or utc_now(),
    )
    db.session.add(notification)
    return notification


def notifications_for_user(user, limit: int = 20) -> List[Notification]:
    return (
        Notification.query.filter_by(user_id=user.id)
        .order_by(Notification.date.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
