# backend/orderdesk/config.py
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

    # SQLite DB stored in backend/instance/orderdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///orderdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Comma separated list of frontend origins allowed to call the API with cookies
    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    )

    # Image store (local disk)
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(os.getcwd(), "uploads"))
    UPLOAD_URL_PREFIX = os.environ.get("UPLOAD_URL_PREFIX", "/uploads")
    MAX_CONTENT_LENGTH = 8 * 1024 * 1024

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Session cookie carrying the bearer token
    ACCESS_TOKEN_COOKIE = "accessToken"
    ACCESS_TOKEN_COOKIE_SECURE = _env_bool("ACCESS_TOKEN_COOKIE_SECURE", False)

    # Mail: "smtp" in production, "memory" keeps messages in an in-process outbox
    MAIL_BACKEND = os.environ.get("MAIL_BACKEND", "memory")
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@orderdesk.local")

    # Require a verified email code (send-otp / verify-otp) before register
    REGISTRATION_REQUIRES_OTP = _env_bool("REGISTRATION_REQUIRES_OTP", False)

    # Used to build password reset links
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
