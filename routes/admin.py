"""Admin and department console: triage, status progression, points reporting."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy import func

from extensions import db
from models import COMPLAINT_STATUSES, Complaint, User
from utils.access import ActorContext
from utils.backfill import run_backfill
from utils.decorators import admin_required, staff_required
from utils.leaderboard import department_leaderboard_for
from utils.security import sanitize_input
from utils.status_engine import assign_department, get_complaint, reject_complaint, transition_status

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _actor() -> ActorContext:
    return ActorContext.from_user(current_user)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _page_args() -> tuple[int, int]:
    default_limit = int(current_app.config.get("ADMIN_COMPLAINTS_PER_PAGE", 20))
    try:
        page = int(request.args.get("page", 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.args.get("limit", default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    return max(page, 1), max(1, min(limit, 100))


@admin_bp.route("/complaints", methods=["GET"])
@staff_required
def list_complaints():
    actor = _actor()
    filters = sanitize_input(request.args)
    status_filter = filters.get("status")
    department_filter = request.args.get("department") or None
    if not actor.is_admin:
        department_filter = actor.department

    query = Complaint.query
    if status_filter and status_filter in COMPLAINT_STATUSES:
        query = query.filter(Complaint.status == status_filter)
    if department_filter:
        query = query.filter(Complaint.department == department_filter)

    page, limit = _page_args()
    total = query.count()
    complaints = (
        query.order_by(Complaint.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    results = []
    for complaint in complaints:
        payload = complaint.public_payload()
        payload["userName"] = complaint.user.display_name if complaint.user else None
        payload["userEmail"] = complaint.user.email if complaint.user else None
        results.append(payload)

    return jsonify(
        {
            "success": True,
            "complaints": results,
            "pagination": {"page": page, "limit": limit, "total": total},
        }
    )


@admin_bp.route("/complaints/<string:complaint_id>", methods=["GET"])
@staff_required
def complaint_detail(complaint_id):
    complaint = get_complaint(complaint_id)
    _actor().ensure_can_act_on(complaint)
    payload = complaint.public_payload()
    payload["userName"] = complaint.user.display_name if complaint.user else None
    payload["userEmail"] = complaint.user.email if complaint.user else None
    payload["departmentAwards"] = [award.public_payload() for award in complaint.department_awards]
    return jsonify({"success": True, "complaint": payload})


@admin_bp.route("/complaints/<string:complaint_id>/assign-department", methods=["PATCH"])
@admin_required
def assign_complaint_department(complaint_id):
    body = _json_body()
    result = assign_department(_actor(), complaint_id, body.get("department"))
    return jsonify({"success": True, "message": "Department assigned successfully", **result.to_payload()})


@admin_bp.route("/complaints/<string:complaint_id>/update-status", methods=["PATCH"])
@staff_required
def update_complaint_status(complaint_id):
    body = _json_body()
    result = transition_status(_actor(), complaint_id, body.get("status"), body.get("department"))
    return jsonify({"success": True, "message": "Status updated successfully", **result.to_payload()})


@admin_bp.route("/complaints/<string:complaint_id>/reject", methods=["PATCH"])
@staff_required
def reject(complaint_id):
    body = _json_body()
    result = reject_complaint(_actor(), complaint_id, body.get("reason"))
    return jsonify(
        {
            "success": True,
            "message": "Complaint rejected",
            "departmentPointsAwarded": result.department_points_awarded,
        }
    )


@admin_bp.route("/dashboard/stats", methods=["GET"])
@admin_required
def dashboard_stats():
    total = Complaint.query.count()
    pending = Complaint.query.filter(Complaint.status == "submitted").count()
    in_progress = Complaint.query.filter(Complaint.status == "in-progress").count()
    resolved = Complaint.query.filter(Complaint.status.in_(["resolved", "completed"])).count()
    total_users = User.query.count()

    by_department = (
        db.session.query(Complaint.department, func.count(Complaint.id))
        .filter(Complaint.department.isnot(None))
        .group_by(Complaint.department)
        .all()
    )
    by_status = db.session.query(Complaint.status, func.count(Complaint.id)).group_by(Complaint.status).all()
    recent = Complaint.query.order_by(Complaint.created_at.desc()).limit(5).all()

    return jsonify(
        {
            "success": True,
            "stats": {
                "total": total,
                "pending": pending,
                "inProgress": in_progress,
                "resolved": resolved,
                "totalUsers": total_users,
                "byDepartment": [{"department": d, "count": c} for d, c in by_department],
                "byStatus": [{"status": s, "count": c} for s, c in by_status],
                "recentComplaints": [
                    {
                        "id": str(c.id),
                        "title": c.title,
                        "status": c.status,
                        "created_at": c.created_at.isoformat() if c.created_at else None,
                    }
                    for c in recent
                ],
            },
        }
    )


@admin_bp.route("/department-leaderboard", methods=["GET"])
@staff_required
def department_leaderboard():
    return jsonify({"success": True, **department_leaderboard_for(_actor())})


@admin_bp.route("/backfill-department-points", methods=["POST"])
@admin_required
def backfill_department_points():
    current_app.logger.info("backfill_requested", extra={"user_id": current_user.id})
    report = run_backfill(_actor())
    return jsonify({"success": True, **report.to_payload()})
