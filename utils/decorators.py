"""Authorization decorators for admin and department-scoped endpoints."""
from functools import wraps

from flask import abort, current_app, request
from flask_login import current_user, login_required

from extensions import db
from models import AuditLog
from utils.access import ActorContext


def _deny(required: str):
    current_app.logger.warning(
        "Unauthorized role access attempt",
        extra={"user_id": current_user.id, "required": required, "path": request.path},
    )
    audit = AuditLog(
        user_id=current_user.id,
        action_type="UNAUTHORIZED_ACCESS",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent", "unknown"),
        context_entity=request.path[:120],
    )
    db.session.add(audit)
    db.session.commit()
    abort(403)


def admin_required(view_func):
    @wraps(view_func)
    @login_required
    def wrapped(*args, **kwargs):
        if ActorContext.from_user(current_user).is_admin:
            return view_func(*args, **kwargs)
        return _deny("admin")

    return wrapped


def staff_required(view_func):
    """Admins, or department accounts bound to a department."""

    @wraps(view_func)
    @login_required
    def wrapped(*args, **kwargs):
        if ActorContext.from_user(current_user).is_staff:
            return view_func(*args, **kwargs)
        return _deny("staff")

    return wrapped
