"""Shared pytest fixtures: an in-memory app, HTTP clients, and record factories."""
import itertools
from datetime import datetime
from types import SimpleNamespace

import pytest
from flask import has_app_context

from app import create_app
from extensions import db
from models import Complaint, StatusHistoryEntry, User

DEFAULT_PASSWORD = "Password123"
T0 = datetime(2025, 11, 7, 9, 0, 0)


@pytest.fixture
def app(tmp_path):
    application = create_app("testing", overrides={"LOG_DIR": str(tmp_path / "logs")})
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Push an app context for service-level tests (not for HTTP tests)."""
    with app.app_context():
        yield app


def _run(app, fn):
    if has_app_context():
        return fn()
    with app.app_context():
        return fn()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(password=DEFAULT_PASSWORD, **fields):
        n = next(counter)

        def create():
            user = User(
                username=fields.pop("username", f"citizen{n}"),
                display_name=fields.pop("display_name", f"Citizen {n}"),
                email=fields.pop("email", f"citizen{n}@civicpoints.org"),
                **fields,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return SimpleNamespace(id=user.id, email=user.email, password=password)

        return _run(app, create)

    return _make


@pytest.fixture
def make_complaint(app):
    """Insert a complaint with an explicit status history: [(status, department, date), ...]."""

    def _make(user_id, department=None, history=None, created_at=T0, **fields):
        history = history or [("submitted", None, created_at)]

        def create():
            complaint = Complaint(
                user_id=user_id,
                title=fields.pop("title", "Pothole on Main Street"),
                description=fields.pop("description", "Deep pothole near the bus stop"),
                category=fields.pop("category", "roads"),
                department=department,
                status=history[-1][0],
                created_at=created_at,
                updated_at=created_at,
                **fields,
            )
            db.session.add(complaint)
            db.session.flush()
            for status, snapshot, date in history:
                db.session.add(
                    StatusHistoryEntry(complaint_id=complaint.id, status=status, department=snapshot, date=date)
                )
            db.session.commit()
            return complaint.id

        return _run(app, create)

    return _make


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(app):
    """Return a fresh test client logged in as the given user."""

    def _login(user):
        http = app.test_client()
        resp = http.post("/auth/login", json={"email": user.email, "password": user.password})
        assert resp.status_code == 200, resp.get_json()
        return http

    return _login


@pytest.fixture
def admin(make_user):
    return make_user(username="admin", display_name="Admin", email="admin@civicpoints.org", is_admin=True)


@pytest.fixture
def roads_officer(make_user):
    return make_user(
        username="roads",
        display_name="Roads Desk",
        email="roads@civicpoints.org",
        is_department_user=True,
        department="Roads",
    )


@pytest.fixture
def citizen(make_user):
    return make_user()
