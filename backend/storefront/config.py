# backend/storefront/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance folder unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///storefront.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer session lifetime
    SESSION_ABSOLUTE_TIMEOUT_HOURS = _int_env("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)
    SESSION_IDLE_TIMEOUT_HOURS = _int_env("SESSION_IDLE_TIMEOUT_HOURS", 2)

    DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 15)
    MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 100)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
