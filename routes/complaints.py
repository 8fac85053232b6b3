"""Citizen complaint intake and read endpoints."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from wtforms import BooleanField, DecimalField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from extensions import db
from models import Complaint, User
from utils.access import ActorContext
from utils.errors import PermissionDeniedError, RequestValidationError
from utils.security import clean_text
from utils.status_engine import get_complaint, submit_complaint
from .auth import JsonForm, first_form_error

complaints_bp = Blueprint("complaints", __name__, url_prefix="/complaints")


class ComplaintForm(JsonForm):
    # Field names follow the mobile client's JSON keys.
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    description = TextAreaField("Description", validators=[DataRequired(), Length(max=3000)])
    category = StringField("Category", validators=[DataRequired(), Length(max=80)])
    location = StringField("Location", validators=[Optional(), Length(max=500)])
    imageUri = StringField("Image URI", validators=[Optional(), Length(max=1024)])
    aiCategorized = BooleanField("AI categorized")
    latitude = DecimalField("Latitude", places=None, validators=[Optional(), NumberRange(min=-90, max=90)])
    longitude = DecimalField("Longitude", places=None, validators=[Optional(), NumberRange(min=-180, max=180)])


def _can_view(complaint: Complaint) -> bool:
    if complaint.user_id == current_user.id:
        return True
    return ActorContext.from_user(current_user).can_act_on(complaint)


@complaints_bp.route("", methods=["GET"])
@login_required
def list_complaints():
    actor = ActorContext.from_user(current_user)
    user_filter = request.args.get("userId") or None
    query = Complaint.query

    if actor.is_admin:
        if user_filter:
            query = query.filter(Complaint.user_id == user_filter)
    elif actor.is_staff:
        query = query.filter(Complaint.department == actor.department)
        if user_filter:
            query = query.filter(Complaint.user_id == user_filter)
    else:
        if user_filter and user_filter != current_user.id:
            raise PermissionDeniedError(detail=f"user {current_user.id} listed complaints of {user_filter}")
        query = query.filter(Complaint.user_id == current_user.id)

    complaints = query.order_by(Complaint.created_at.desc()).all()
    return jsonify({"success": True, "complaints": [c.public_payload() for c in complaints]})


@complaints_bp.route("/<string:complaint_id>", methods=["GET"])
@login_required
def get_complaint_detail(complaint_id):
    complaint = get_complaint(complaint_id)
    if not _can_view(complaint):
        raise PermissionDeniedError(detail=f"user {current_user.id} viewed complaint {complaint.id}")
    return jsonify({"success": True, "complaint": complaint.public_payload()})


@complaints_bp.route("", methods=["POST"])
@login_required
def create_complaint():
    form = ComplaintForm()
    if not form.validate_on_submit():
        raise RequestValidationError(first_form_error(form))

    max_length = int(current_app.config.get("MAX_DESCRIPTION_LENGTH", 3000))
    title = clean_text(form.title.data)
    description = clean_text(form.description.data)
    category = clean_text(form.category.data)
    if not title or not description or not category:
        raise RequestValidationError("Title, description and category are required")
    if len(description) > max_length:
        raise RequestValidationError("Description is too long")

    user = db.session.get(User, current_user.id)
    complaint = submit_complaint(
        user,
        title=title,
        description=description,
        category=category,
        location=clean_text(form.location.data),
        latitude=form.latitude.data,
        longitude=form.longitude.data,
        image_uri=(form.imageUri.data or "").strip() or None,
        ai_categorized=bool(form.aiCategorized.data),
    )
    return jsonify({"success": True, "complaint": complaint.public_payload(include_history=True)}), 201
