"""Blueprint registration and public gamification endpoints."""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from models import Prize
from utils.leaderboard import user_leaderboard
from utils.notifications import notifications_for_user
from .admin import admin_bp
from .auth import auth_bp
from .complaints import complaints_bp

main_bp = Blueprint("main", __name__)


@main_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"success": True, "status": "ok"})


@main_bp.route("/api/leaderboard", methods=["GET"])
def leaderboard():
    limit = int(current_app.config.get("LEADERBOARD_LIMIT", 50))
    return jsonify({"success": True, "leaderboard": user_leaderboard(limit)})


@main_bp.route("/api/prizes", methods=["GET"])
def prizes():
    available = Prize.query.filter(Prize.available.is_(True)).order_by(Prize.point_cost.asc()).all()
    return jsonify({"success": True, "prizes": [p.public_payload() for p in available]})


@main_bp.route("/api/notifications", methods=["GET"])
@login_required
def notifications():
    limit = int(current_app.config.get("NOTIFICATIONS_LIMIT", 20))
    items = notifications_for_user(current_user, limit=limit)
    return jsonify({"success": True, "notifications": [n.public_payload() for n in items]})


__all__ = ["main_bp", "auth_bp", "complaints_bp", "admin_bp"]
