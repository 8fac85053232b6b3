"""Configuration classes selected by ``create_app`` (``FLASK_CONFIG`` / ``FLASK_ENV``)."""
import os
from datetime import timedelta


def _default_sqlite_url() -> str:
    return f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'civic_points.db')}"


class BaseConfig:
    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")

        # Database: DATABASE_URL wins unless it is the compose placeholder host.
        database_url = os.getenv("DATABASE_URL")
        if database_url and "db_host" not in database_url:
            self.SQLALCHEMY_DATABASE_URI = database_url
        else:
            self.SQLALCHEMY_DATABASE_URI = os.getenv("SQLITE_URL", _default_sqlite_url())
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False
        self.SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
        if not self.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            self.SQLALCHEMY_ENGINE_OPTIONS.update(
                pool_size=int(os.getenv("DB_POOL_SIZE", 10)),
                max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 20)),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),
                pool_recycle=int(os.getenv("DB_POOL_RECYCLE", 1800)),
            )

        # Sessions (Flask-Login cookie auth for the mobile client and admin portal).
        self.SESSION_COOKIE_HTTPONLY = True
        self.SESSION_COOKIE_SAMESITE = "Lax"
        self.REMEMBER_COOKIE_HTTPONLY = True
        self.PERMANENT_SESSION_LIFETIME = timedelta(days=7)
        self.REMEMBER_COOKIE_DURATION = timedelta(days=30)
        self.PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "https")
        self.WTF_CSRF_ENABLED = True
        self.WTF_CSRF_TIME_LIMIT = 3600
        self.PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256")
        self.MAX_CONTENT_LENGTH = int(os.getenv("MAX_REQUEST_BYTES", 2 * 1024 * 1024))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))

        # Seeded on startup when both are set; the address must pass email validation.
        self.DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@civicpoints.org")
        self.DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "Admin@12345!")

        self.LEADERBOARD_LIMIT = int(os.getenv("LEADERBOARD_LIMIT", 50))
        self.NOTIFICATIONS_LIMIT = int(os.getenv("NOTIFICATIONS_LIMIT", 20))
        self.ADMIN_COMPLAINTS_PER_PAGE = int(os.getenv("ADMIN_COMPLAINTS_PER_PAGE", 20))
        self.MAX_DESCRIPTION_LENGTH = int(os.getenv("MAX_DESCRIPTION_LENGTH", 3000))


class DevelopmentConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = True
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()
        self.PREFERRED_URL_SCHEME = "http"
        self.SESSION_COOKIE_SECURE = False
        self.REMEMBER_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.DEBUG = False
        self.SESSION_COOKIE_SECURE = True
        self.REMEMBER_COOKIE_SECURE = True


class TestingConfig(BaseConfig):
    def __init__(self) -> None:
        super().__init__()
        self.TESTING = True
        self.DEBUG = False
        # Flask-SQLAlchemy shares one connection for in-memory SQLite.
        self.SQLALCHEMY_DATABASE_URI = "sqlite://"
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.WTF_CSRF_ENABLED = False
        self.SESSION_COOKIE_SECURE = False
        self.REMEMBER_COOKIE_SECURE = False
        self.PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
        self.DEFAULT_ADMIN_EMAIL = ""
