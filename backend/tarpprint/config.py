# backend/tarpprint/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tarpprint.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tarpprint.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # "local" (bcrypt over the users table) or "managed" (external identity service)
    AUTH_PROVIDER = os.environ.get("AUTH_PROVIDER", "local")
    MANAGED_AUTH_URL = os.environ.get("MANAGED_AUTH_URL", "")
    MANAGED_AUTH_API_KEY = os.environ.get("MANAGED_AUTH_API_KEY", "")
    MANAGED_AUTH_TIMEOUT_SECONDS = float(os.environ.get("MANAGED_AUTH_TIMEOUT_SECONDS", "10"))

    # Uploads: the server limit is authoritative, clients read it from /api/uploads/constraints
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(os.getcwd(), "uploads"))
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024  # multipart envelope overhead
    ALLOWED_UPLOAD_EXTENSIONS = ("jpg", "jpeg", "png", "pdf")

    # "guarded" enforces the status transition table, "open" allows any-to-any
    ORDER_STATUS_POLICY = os.environ.get("ORDER_STATUS_POLICY", "guarded")

    PAYMENT_SIMULATION_DELAY_SECONDS = float(os.environ.get("PAYMENT_SIMULATION_DELAY_SECONDS", "0"))

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    )

    DEBUG_SEED_ENABLED = _env_bool("DEBUG_SEED_ENABLED", False)
