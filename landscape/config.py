"""
ERP Landscape Analyzer
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets
import tempfile

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'landscape_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,   # recycle connections every 5 min
    }

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # ── Extraction ───────────────────────────────────────────────────────
    EXTRACTION_MODE = os.getenv("EXTRACTION_MODE", "mock")           # mock | live
    EXTRACTION_CONCURRENCY = _int_env("EXTRACTION_CONCURRENCY", max(os.cpu_count() or 1, 1))
    CHECKPOINT_DIR = os.getenv(
        "CHECKPOINT_DIR", os.path.join(basedir, "instance", "checkpoints"),
    )

    # ── Source system descriptor ─────────────────────────────────────────
    SOURCE_FAMILY = os.getenv("SOURCE_FAMILY", "SAP")
    SOURCE_RELEASE = os.getenv("SOURCE_RELEASE", "ECC 6.0 EhP8")
    SOURCE_TENANT = os.getenv("SOURCE_TENANT", "100")

    # ── Live gateway (table-reader bridge) ───────────────────────────────
    SOURCE_GATEWAY_URL = os.getenv("SOURCE_GATEWAY_URL", "")
    SOURCE_GATEWAY_USER = os.getenv("SOURCE_GATEWAY_USER", "")
    SOURCE_GATEWAY_SECRET = os.getenv("SOURCE_GATEWAY_SECRET", "")   # Fernet token
    GATEWAY_READ_TIMEOUT = _int_env("GATEWAY_READ_TIMEOUT", 30)       # seconds, unary reads
    GATEWAY_STREAM_TIMEOUT = _int_env("GATEWAY_STREAM_TIMEOUT", 300)  # seconds, per page
    GATEWAY_PAGE_SIZE = _int_env("GATEWAY_PAGE_SIZE", 500)

    # ── Security tier ────────────────────────────────────────────────────
    OPERATION_LOG_MAX_ENTRIES = _int_env("OPERATION_LOG_MAX_ENTRIES", 10000)
    APPROVAL_EXPIRY_HOURS = _int_env("APPROVAL_EXPIRY_HOURS", 24)


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = (
        _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else _SQLITE_DEV
    )


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    EXTRACTION_MODE = "mock"
    EXTRACTION_CONCURRENCY = 2
    CHECKPOINT_DIR = os.path.join(tempfile.gettempdir(), "landscape-test-checkpoints")


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    _raw_db_url = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI = _raw_db_url.replace("postgres://", "postgresql://", 1) if _raw_db_url else None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
