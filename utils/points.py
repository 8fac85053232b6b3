"""Fixed point tables and the pure scoring functions built on them."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

# Cumulative value a complaint is worth to its submitter at each status.
USER_STATUS_POINTS: dict[str, int] = {
    "submitted": 0,
    "assigned": 10,
    "in-progress": 25,
    "resolved": 50,
    "completed": 100,
}

ASSIGNMENT_POINTS = USER_STATUS_POINTS["assigned"]

# Base credit for the department that handled each status.
DEPARTMENT_BASE_POINTS: dict[str, int] = {
    "assigned": 5,
    "in-progress": 10,
    "resolved": 20,
    "completed": 30,
    "rejected": 2,
}

STARTER_BONUS = 2

# (upper bound in hours, bonus); evaluated smallest first, first match wins.
TIMELINESS_BANDS: tuple[tuple[float, int], ...] = (
    (1, 10),
    (6, 6),
    (24, 4),
    (48, 2),
)


def user_status_points(status: str) -> int:
    return USER_STATUS_POINTS.get(status, 0)


def user_points_delta(status: str, recorded_points: Optional[int]) -> int:
    """Points the submitter earns moving to `status`; never negative."""
    return max(0, user_status_points(status) - (recorded_points or 0))


def elapsed_hours(previous_at: datetime, current_at: datetime) -> float:
    return max(0.0, (current_at - previous_at).total_seconds() / 3600)


def bonus_for_hours(hours: float) -> int:
    for upper_bound, bonus in TIMELINESS_BANDS:
        if hours < upper_bound:
            return bonus
    return 0


def timeliness_bonus(previous_at: Optional[datetime], current_at: datetime) -> int:
    """Bonus for acting quickly after the previous award on the same complaint.

    ``previous_at`` is None for a complaint's first award, which always
    earns the starter bonus regardless of elapsed time.
    """
    if previous_at is None:
        return STARTER_BONUS
    return bonus_for_hours(elapsed_hours(previous_at, current_at))


def department_award_points(status: str, previous_at: Optional[datetime], current_at: datetime) -> int:
    """Total department credit (base + bonus) for a status event, 0 when ineligible."""
    base = DEPARTMENT_BASE_POINTS.get(status, 0)
    if base <= 0:
        return 0
    return base + timeliness_bonus(previous_at, current_at)
