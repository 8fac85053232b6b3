"""Flask application factory for the civic complaint points service."""
import os
from typing import Optional

import click
from flask import Flask, jsonify, request
from sqlalchemy.engine.url import make_url
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from utils.errors import ServiceError
from utils.logger import init_logging
from utils.security import apply_security_headers
from extensions import csrf, db, migrate, login_manager


def _error_response(kind: str, message: str, status: int):
    return jsonify({"success": False, "error": kind, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def service_error(error: ServiceError):
        log = app.logger.error if error.status_code >= 500 else app.logger.warning
        log(
            "service_error",
            extra={"kind": error.kind, "detail": str(error), "path": request.path, "method": request.method},
        )
        return _error_response(error.kind, error.public_message, error.status_code)

    @app.errorhandler(401)
    def unauthorized_error(error):
        return _error_response("authentication", "Authentication required.", 401)

    @app.errorhandler(403)
    def forbidden(error):
        app.logger.warning("access_denied", extra={"path": request.path, "method": request.method})
        return _error_response("permission", "Access denied.", 403)

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning("route_not_found", extra={"path": request.path, "method": request.method})
        return _error_response("not_found", "Resource not found.", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error_response("validation", "Method not allowed.", 405)

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception("unhandled_error", extra={"path": request.path})
        db.session.rollback()
        return _error_response("internal", "An unexpected error occurred.", 500)

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return _error_response("http", error.description or error.name, error.code or 500)


def ensure_default_admin(app: Flask) -> None:
    """Seed the configured admin account so the console is reachable on first boot."""
    from models import User

    email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").lower().strip()
    password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not email or not password:
        return

    account = User.query.filter_by(email=email).first()
    if account is None:
        account = User(username="admin", display_name="System Administrator", email=email)
        account.set_password(password)
        db.session.add(account)
    elif account.is_admin and account.is_active:
        return
    account.is_admin = True
    account.is_active = True
    db.session.commit()
    app.logger.info("default_admin_ensured", extra={"email": email})


def prepare_sqlite_path(database_uri: str) -> None:
    """File-backed SQLite needs its parent directory; server databases are provisioned externally."""
    url = make_url(database_uri)
    if not url.drivername.startswith("sqlite"):
        return
    if url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)


def register_cli(app: Flask) -> None:
    @app.cli.command("points-backfill")
    def points_backfill():
        """Populate missing department point awards from status history."""
        from utils.access import ActorContext
        from utils.backfill import run_backfill

        report = run_backfill(ActorContext.system())
        click.echo(
            f"Processed {report.complaints_processed} complaint(s), "
            f"inserted {report.rows_inserted} award(s), {len(report.failures)} failure(s)."
        )
        for entry in report.leaderboard:
            click.echo(f"{entry['rank']:>3}. {entry['department']}: {entry['totalPoints']} pts ({entry['actionsCount']} actions)")
        for failure in report.failures:
            click.echo(f"  failed: {failure['complaint_id']} ({failure['error']})", err=True)


def _config_for(name: Optional[str]):
    from config import DevelopmentConfig, ProductionConfig, TestingConfig

    configs = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
    }
    key = (name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    return configs.get(key, ProductionConfig)()


def create_app(config_name: Optional[str] = None, overrides: Optional[dict] = None) -> Flask:
    """Build the points service.

    ``config_name`` falls back to ``FLASK_CONFIG``/``FLASK_ENV``; ``overrides``
    are applied last. Serve with ``gunicorn "app:create_app()"``.
    """
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(_config_for(config_name))
    if not app.config.get("TESTING"):
        app.config.from_pyfile("config.py", silent=True)
        os.makedirs(app.instance_path, exist_ok=True)
    if overrides:
        app.config.update(overrides)

    prepare_sqlite_path(app.config["SQLALCHEMY_DATABASE_URI"])
    app.logger = init_logging(app)

    csrf.init_app(app)
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.session_protection = "strong"

    @login_manager.user_loader
    def load_user(user_id):
        from models import User

        return db.session.get(User, str(user_id)) if user_id else None

    @login_manager.unauthorized_handler
    def unauthorized():
        return _error_response("authentication", "Authentication required.", 401)

    from routes import admin_bp, auth_bp, complaints_bp, main_bp

    # Session-cookie JSON API; the forms validate bodies without CSRF tokens.
    for blueprint in (main_bp, auth_bp, complaints_bp, admin_bp):
        csrf.exempt(blueprint)
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(complaints_bp)
    app.register_blueprint(admin_bp)

    register_cli(app)
    register_error_handlers(app)

    @app.after_request
    def _security_headers(response):
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    with app.app_context():
        import models  # noqa: F401

        db.create_all()
        ensure_default_admin(app)

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), use_reloader=False)
