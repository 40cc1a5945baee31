# backend/payables/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the working directory by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///payables.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Frontend origins allowed to call the API
    CORS_ALLOWED_ORIGINS = _split_csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))

    # Attempts for settlement/reversal writes on lock or version conflicts
    SETTLEMENT_RETRY_ATTEMPTS = int(os.environ.get("SETTLEMENT_RETRY_ATTEMPTS", "3"))

    # Statement workbooks render right-to-left when set
    EXPORT_RIGHT_TO_LEFT = os.environ.get("EXPORT_RIGHT_TO_LEFT", "false").lower() == "true"


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SETTLEMENT_RETRY_ATTEMPTS = 1
