"""Request-scoped authorization context for complaint handling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from utils.errors import PermissionDeniedError


@dataclass(frozen=True)
class ActorContext:
    user_id: Optional[str]
    is_admin: bool = False
    is_department_user: bool = False
    department: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "ActorContext":
        if user is None or not getattr(user, "is_authenticated", False):
            return cls(user_id=None)
        return cls(
            user_id=str(user.id),
            is_admin=bool(user.is_admin),
            is_department_user=bool(user.is_department_user),
            department=(user.department or None),
        )

    @classmethod
    def system(cls) -> "ActorContext":
        """Context for CLI jobs that run with full administrative scope."""
        return cls(user_id=None, is_admin=True)

    @property
    def is_staff(self) -> bool:
        return self.is_admin or (self.is_department_user and bool(self.department))

    def can_act_on(self, complaint) -> bool:
        if self.is_admin:
            return True
        return self.is_staff and complaint.department == self.department

    def ensure_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDeniedError(detail=f"user {self.user_id} is not an admin")

    def ensure_can_act_on(self, complaint) -> None:
        if not self.can_act_on(complaint):
            raise PermissionDeniedError(
                "You can only manage complaints assigned to your department.",
                detail=f"user {self.user_id} ({self.department}) denied on complaint {complaint.id} ({complaint.department})",
            )

    def ensure_department_change_allowed(self, department: Optional[str]) -> None:
        if self.is_admin or not department:
            return
        if department != self.department:
            raise PermissionDeniedError(
                "Department users cannot reassign complaints to another department.",
                detail=f"user {self.user_id} tried to move a complaint to {department}",
            )
