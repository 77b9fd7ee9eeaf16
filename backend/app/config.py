# backend/app/config.py
from __future__ import annotations
import os


def _flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip() == "1"


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/listo.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///listo.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens. When JWT_SECRET is unset the token service derives one
    # from JWT_SECRET_FALLBACK, ADMIN_BOOTSTRAP_TOKEN or ADMIN_PASSWORD.
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_SECRET_FALLBACK = os.environ.get("JWT_SECRET_FALLBACK")
    JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", "7"))

    # Schema features, resolved once at startup
    FEATURE_VARIANTS = _flag("FEATURE_VARIANTS")
    FEATURE_VISIBILITY_FLAGS = _flag("FEATURE_VISIBILITY_FLAGS")

    # Comma separated; empty means "echo any origin"
    FRONTEND_ORIGINS = [
        o.strip() for o in os.environ.get("FRONTEND_ORIGIN", "").split(",") if o.strip()
    ]

    # Transactional e-mail (Resend HTTP API)
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    RESEND_API_URL = os.environ.get("RESEND_API_URL", "https://api.resend.com/emails")
    EMAIL_FROM = os.environ.get("EMAIL_FROM", "Listo365 <onboarding@resend.dev>")
    COMPANY_ORDERS_EMAIL = os.environ.get("COMPANY_ORDERS_EMAIL", "")
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "10"))

    # One-shot admin bootstrap (POST /auth/bootstrap-admin, flask system init)
    ADMIN_BOOTSTRAP_TOKEN = os.environ.get("ADMIN_BOOTSTRAP_TOKEN")
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@listo365.com")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "Admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")
