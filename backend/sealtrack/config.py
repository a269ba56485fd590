# backend/sealtrack/config.py
from __future__ import annotations
import os


def env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/sealtrack.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///sealtrack.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" keeps documents in the relational DB, "memory" keeps them in-process
    DOCUMENT_STORE = os.environ.get("DOCUMENT_STORE", "sql")

    LOG_LEVEL = os.environ.get("LOG_LEVEL")
    LOG_FORMAT = os.environ.get("LOG_FORMAT")  # "json" or "readable"

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))
    PASSWORD_RESET_TTL_HOURS = int(os.environ.get("PASSWORD_RESET_TTL_HOURS", "24"))

    # Inline image limits (bytes)
    MAX_IMAGE_BYTES = int(os.environ.get("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    MAX_SOURCE_IMAGE_BYTES = int(os.environ.get("MAX_SOURCE_IMAGE_BYTES", str(20 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = 5 * MAX_SOURCE_IMAGE_BYTES + 1024 * 1024

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    DEBUG = env_bool("FLASK_DEBUG", False)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    DOCUMENT_STORE = "sql"
