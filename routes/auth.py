"""Account registration, session login, and profile blueprint."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf import FlaskForm
from sqlalchemy.exc import IntegrityError
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Regexp, ValidationError

from extensions import db
from models import AuditLog, User
from utils.clock import utc_now
from utils.errors import RequestValidationError
from utils.leaderboard import user_rank
from utils.security import password_meets_policy

auth_bp = Blueprint("auth", __name__)


class JsonForm(FlaskForm):
    """JSON API forms; session cookies are not the mobile client's CSRF vector."""

    class Meta:
        csrf = False


class RegistrationForm(JsonForm):
    username = StringField(
        "Username",
        validators=[DataRequired(), Length(min=3, max=80), Regexp(r"^[A-Za-z0-9_.-]+$", message="Invalid username.")],
    )
    displayName = StringField("Display Name", validators=[DataRequired(), Length(max=150)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=8, max=128)])

    def validate_email(self, field):
        if User.query.filter_by(email=field.data.lower().strip()).first():
            raise ValidationError("Email already exists")

    def validate_username(self, field):
        if User.query.filter_by(username=field.data.strip()).first():
            raise ValidationError("Username already exists")


class LoginForm(JsonForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember me")


def first_form_error(form: FlaskForm) -> str:
    for field_name, errors in form.errors.items():
        if errors:
            return f"{field_name}: {errors[0]}"
    return "Invalid request."


def log_action(action: str, user: User | None, context: str | None = None) -> None:
    db.session.add(
        AuditLog(
            user_id=user.id if user else None,
            action_type=action,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent", "unknown"),
            context_entity=context,
        )
    )


@auth_bp.route("/register", methods=["POST"])
def register():
    form = RegistrationForm()
    if not form.validate_on_submit():
        raise RequestValidationError(first_form_error(form))

    password_ok, reason = password_meets_policy(form.password.data)
    if not password_ok:
        raise RequestValidationError(reason)

    try:
        user = User(
            username=form.username.data.strip(),
            display_name=form.displayName.data.strip(),
            email=form.email.data.lower().strip(),
            is_active=True,
        )
        user.set_password(form.password.data)
        db.session.add(user)
        db.session.flush()
        log_action("REGISTER", user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RequestValidationError("Unable to register with the provided details.")

    login_user(user)
    current_app.logger.info("user_registered", extra={"user_id": user.id})
    return jsonify(
        {
            "success": True,
            "message": "User registered successfully",
            "user": user.public_payload(rank=user_rank(user)),
        }
    ), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise RequestValidationError(first_form_error(form))

    user = User.query.filter_by(email=form.email.data.lower().strip()).first()
    if not user or not user.check_password(form.password.data):
        log_action("LOGIN_FAILED", user)
        db.session.commit()
        return jsonify({"success": False, "error": "authentication", "message": "Invalid credentials"}), 401

    if not user.is_active:
        return jsonify({"success": False, "error": "permission", "message": "Account is inactive"}), 403

    login_user(user, remember=bool(form.remember_me.data))
    user.last_login_at = utc_now()
    log_action("LOGIN", user)
    db.session.commit()
    return jsonify({"success": True, "user": user.public_payload(rank=user_rank(user))})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    log_action("LOGOUT", current_user)
    db.session.commit()
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/profile", methods=["GET"])
@login_required
def profile():
    return jsonify({"success": True, "user": current_user.public_payload(rank=user_rank(current_user))})
