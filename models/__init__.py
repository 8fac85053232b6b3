"""Core data models for accounts, complaints, the status ledger, and points."""
import uuid

from flask import current_app
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db
from utils.clock import utc_now


def generate_uuid() -> str:
	return str(uuid.uuid4())


COMPLAINT_STATUSES: tuple[str, ...] = (
	"submitted",
	"assigned",
	"in-progress",
	"resolved",
	"completed",
	"rejected",
)

NOTIFICATION_TYPES: tuple[str, ...] = (
	"info",
	"success",
	"warning",
)

_STATUS_SQL = ",".join(f"'{s}'" for s in COMPLAINT_STATUSES)


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	username = db.Column(db.String(80), unique=True, nullable=False, index=True)
	display_name = db.Column(db.String(150), nullable=False)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	avatar_uri = db.Column(db.String(1024), nullable=True)
	shipping_address = db.Column(db.String(500), nullable=True)
	is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
	is_department_user = db.Column(db.Boolean, default=False, nullable=False, index=True)
	department = db.Column(db.String(120), nullable=True, index=True)
	points = db.Column(db.Integer, default=0, nullable=False, index=True)
	submissions_count = db.Column(db.Integer, default=0, nullable=False)
	is_active = db.Column(db.Boolean, default=True, nullable=False)
	created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
	last_login_at = db.Column(db.DateTime, nullable=True)

	__table_args__ = (
		db.CheckConstraint("points >= 0", name="ck_user_points_non_negative"),
	)

	audit_logs = db.relationship("AuditLog", back_populates="user", lazy="dynamic")
	complaints = db.relationship("Complaint", back_populates="user", lazy="dynamic")
	notifications = db.relationship("Notification", back_populates="user", lazy="dynamic")

	def set_password(self, password: str) -> None:
		method = current_app.config.get("PASSWORD_HASH_METHOD", "pbkdf2:sha256")
		self.password_hash = generate_password_hash(password, method=method, salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	@property
	def active(self) -> bool:  # Flask-Login compatibility alias
		return self.is_active

	def public_payload(self, rank: int | None = None) -> dict:
		return {
			"id": str(self.id),
			"username": self.username,
			"displayName": self.display_name,
			"email": self.email,
			"avatarUri": self.avatar_uri,
			"points": self.points,
			"rank": rank,
			"submissions": self.submissions_count,
			"shippingAddress": self.shipping_address,
			"is_admin": bool(self.is_admin),
			"department": self.department or None,
			"is_department_user": bool(self.is_department_user),
		}


class AuditLog(db.Model):
	__tablename__ = "audit_logs"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
	action_type = db.Column(db.String(50), nullable=False)
	ip_address = db.Column(db.String(64), nullable=True)
	user_agent = db.Column(db.String(255), nullable=True)
	context_entity = db.Column(db.String(120), nullable=True)
	timestamp = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)

	user = db.relationship("User", back_populates="audit_logs")


class Complaint(db.Model):
	__tablename__ = "complaints"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	title = db.Column(db.String(255), nullable=False)
	description = db.Column(db.Text, nullable=False)
	category = db.Column(db.String(80), nullable=False, index=True)
	location = db.Column(db.String(500), nullable=True)
	latitude = db.Column(db.Numeric(10, 7), nullable=True)
	longitude = db.Column(db.Numeric(10, 7), nullable=True)
	image_uri = db.Column(db.String(1024), nullable=True)
	ai_categorized = db.Column(db.Boolean, default=False, nullable=False)
	status = db.Column(db.String(20), nullable=False, default="submitted", index=True)
	points = db.Column(db.Integer, nullable=False, default=0)
	department = db.Column(db.String(120), nullable=True, index=True)
	rejection_reason = db.Column(db.String(500), nullable=True)
	created_at = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
	updated_at = db.Column(
		db.DateTime,
		default=utc_now,
		onupdate=utc_now,
		nullable=False,
		index=True,
	)

	__table_args__ = (
		db.CheckConstraint(f"status IN ({_STATUS_SQL})", name="ck_complaint_status_valid"),
		db.CheckConstraint("points >= 0", name="ck_complaint_points_non_negative"),
		db.Index("ix_complaints_status_department", "status", "department"),
	)

	user = db.relationship("User", back_populates="complaints")
	status_history = db.relationship(
		"StatusHistoryEntry",
		back_populates="complaint",
		order_by="[StatusHistoryEntry.date, StatusHistoryEntry.id]",
		lazy="select",
	)
	department_awards = db.relationship(
		"DepartmentPointsAward",
		back_populates="complaint",
		order_by="DepartmentPointsAward.date",
		lazy="select",
	)

	def public_payload(self, include_history: bool = True) -> dict:
		payload = {
			"id": str(self.id),
			"userId": str(self.user_id),
			"imageUri": self.image_uri,
			"title": self.title,
			"description": self.description,
			"category": self.category,
			"status": self.status,
			"points": self.points,
			"submittedDate": self.created_at.isoformat() if self.created_at else None,
			"department": self.department,
			"latitude": float(self.latitude) if self.latitude is not None else None,
			"longitude": float(self.longitude) if self.longitude is not None else None,
			"aiCategorized": bool(self.ai_categorized),
			"location": self.location,
			"rejectionReason": self.rejection_reason,
		}
		if include_history:
			payload["statusHistory"] = [entry.public_payload() for entry in self.status_history]
		return payload


class StatusHistoryEntry(db.Model):
	"""Append-only ledger of every status a complaint has passed through."""

	__tablename__ = "status_history"

	id = db.Column(db.Integer, primary_key=True)
	complaint_id = db.Column(db.String(36), db.ForeignKey("complaints.id"), nullable=False, index=True)
	status = db.Column(db.String(20), nullable=False, index=True)
	# Snapshot of the responsible department when the transition happened.
	department = db.Column(db.String(120), nullable=True)
	date = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint(f"status IN ({_STATUS_SQL})", name="ck_status_history_valid"),
		db.Index("ix_status_history_complaint_date", "complaint_id", "date"),
	)

	complaint = db.relationship("Complaint", back_populates="status_history")

	def public_payload(self) -> dict:
		return {
			"status": self.status,
			"date": self.date.isoformat() if self.date else None,
			"department": self.department,
		}


class DepartmentPointsAward(db.Model):
	"""One department credit per (complaint, status); never updated or deleted."""

	__tablename__ = "department_points_history"

	id = db.Column(db.Integer, primary_key=True)
	complaint_id = db.Column(db.String(36), db.ForeignKey("complaints.id"), nullable=False, index=True)
	department = db.Column(db.String(120), nullable=False, index=True)
	status = db.Column(db.String(20), nullable=False)
	points_awarded = db.Column(db.Integer, nullable=False, default=0)
	date = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)

	__table_args__ = (
		db.UniqueConstraint("complaint_id", "status", name="uq_department_points_complaint_status"),
	)

	complaint = db.relationship("Complaint", back_populates="department_awards")

	def public_payload(self) -> dict:
		return {
			"complaintId": str(self.complaint_id),
			"department": self.department,
			"status": self.status,
			"pointsAwarded": self.points_awarded,
			"date": self.date.isoformat() if self.date else None,
		}


class Notification(db.Model):
	__tablename__ = "notifications"

	id = db.Column(db.Integer, primary_key=True)
	user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	complaint_id = db.Column(db.String(36), db.ForeignKey("complaints.id"), nullable=True, index=True)
	title = db.Column(db.String(255), nullable=False)
	message = db.Column(db.String(1000), nullable=False)
	type = db.Column(db.String(20), nullable=False, default="info")
	read = db.Column(db.Boolean, default=False, nullable=False)
	date = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)

	__table_args__ = (
		db.CheckConstraint("type IN ('info','success','warning')", name="ck_notification_type"),
	)

	user = db.relationship("User", back_populates="notifications")

	def public_payload(self) -> dict:
		return {
			"id": str(self.id),
			"title": self.title,
			"message": self.message,
			"date": self.date.isoformat() if self.date else None,
			"type": self.type,
			"submissionId": str(self.complaint_id) if self.complaint_id else None,
			"read": bool(self.read),
		}


class Prize(db.Model):
	__tablename__ = "prizes"

	id = db.Column(db.Integer, primary_key=True)
	title = db.Column(db.String(255), nullable=False)
	description = db.Column(db.Text, nullable=True)
	image_uri = db.Column(db.String(1024), nullable=True)
	point_cost = db.Column(db.Integer, nullable=False, index=True)
	category = db.Column(db.String(80), nullable=True)
	available = db.Column(db.Boolean, default=True, nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

	def public_payload(self) -> dict:
		return {
			"id": str(self.id),
			"title": self.title,
			"description": self.description,
			"imageUri": self.image_uri,
			"pointCost": self.point_cost,
			"category": self.category,
			"available": bool(self.available),
		}
