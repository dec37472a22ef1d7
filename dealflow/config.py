"""
dealflow configuration classes.

``create_app(name)`` instantiates ``config[name]`` and loads its upper-case
attributes. Values are read from the environment when this module is imported.

Environment:
    SECRET_KEY, DATABASE_URL, TEST_DATABASE_URL, CORS_ORIGINS, LOG_LEVEL,
    PROCESS_ENFORCEMENT_ENABLED, DEFAULT_ENTITY_TYPE, SLOW_REQUEST_MS
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'dealflow_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _database_url(var: str = "DATABASE_URL") -> str:
    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    raw = os.getenv(var, "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else ""


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Request handling
    MAX_CONTENT_LENGTH = 1024 * 1024
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))

    # Workflow engine
    PROCESS_ENFORCEMENT_ENABLED = _env_flag("PROCESS_ENFORCEMENT_ENABLED")
    DEFAULT_ENTITY_TYPE = os.getenv("DEFAULT_ENTITY_TYPE", "deals")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    PROCESS_ENFORCEMENT_ENABLED = True
    DEFAULT_ENTITY_TYPE = "deals"


class ProductionConfig(Config):
    """Needs DATABASE_URL and SECRET_KEY; CORS origins must be listed explicitly."""

    SQLALCHEMY_DATABASE_URI = _database_url() or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        missing = [
            name for name, value in (
                ("DATABASE_URL", self.SQLALCHEMY_DATABASE_URI),
                ("SECRET_KEY", os.getenv("SECRET_KEY")),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Missing required environment for production: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
