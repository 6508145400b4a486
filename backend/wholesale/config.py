# backend/wholesale/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/wholesale.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///wholesale.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Order numbers: ORD + zero-padded running number, first order is ORD001001
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ORD")
    ORDER_NUMBER_PAD = int(os.environ.get("ORDER_NUMBER_PAD", "6"))
    ORDER_NUMBER_START = int(os.environ.get("ORDER_NUMBER_START", "1001"))

    # False: any forward status may be requested (admin override).
    # True: only the next step on the delivery pipeline, or cancellation.
    ORDER_STRICT_TRANSITIONS = _env_bool("ORDER_STRICT_TRANSITIONS", False)

    # When False, Shop.credit_limit_paise is informational only
    ENFORCE_CREDIT_LIMIT = _env_bool("ENFORCE_CREDIT_LIMIT", False)

    SESSION_ABSOLUTE_HOURS = int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("SESSION_IDLE_HOURS", "12"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]

    # Bootstrap owner account created by `flask system init`
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@wholesale.local")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "Admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")
