# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/app/routes/auth.py
"""
Authentication API routes

- POST /auth/login            email + password -> bearer token (7 days)
- GET  /auth/me               current user, re-read from the database
- POST /auth/bootstrap-admin  one-shot admin creation guarded by ADMIN_BOOTSTRAP_TOKEN

Login answers the same 401 whether the email is unknown or the password
is wrong.
"""

import hmac

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service, token_service
from ..services.auth_service import PasswordValidationError
from ..decorators import require_auth
from ..validation import PayloadValidator, ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/login")
def login_route():
    v = PayloadValidator(request.get_json(silent=True))
    email = v.email("email", required=True)
    password = v.string("password", required=True, min_len=6, max_len=200)
    try:
        v.check()
    except ValidationError:
        return jsonify({"error": "Invalid payload"}), 400

    user = auth_service.authenticate(email, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    try:
        token = token_service.issue_token(user)
    except RuntimeError:
        current_app.logger.exception("Cannot issue token")
        return jsonify({"error": "JWT secret not set"}), 500

    return jsonify({
        "token": token,
        "user": {"id": user.id, "email": user.email, "name": user.name, "role": user.role},
    })


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict())


@auth_bp.post("/bootstrap-admin")
def bootstrap_admin_route():
    """
    Create or reset the configured admin (ADMIN_EMAIL / ADMIN_NAME /
    ADMIN_PASSWORD) and return a token for it.

    Forbidden unless the body's "token" matches ADMIN_BOOTSTRAP_TOKEN.
    Meant to be used once and then disabled by unsetting the env var.
    """
    expected = current_app.config.get("ADMIN_BOOTSTRAP_TOKEN") or ""
    provided = str((request.get_json(silent=True) or {}).get("token") or "")
    if not expected or not hmac.compare_digest(provided, expected):
        return jsonify({"error": "Forbidden"}), 403

    password = current_app.config.get("ADMIN_PASSWORD")
    if not password:
        return jsonify({"error": "ADMIN_PASSWORD not set"}), 500

    try:
        user = auth_service.upsert_admin(
            current_app.config.get("ADMIN_EMAIL") or "admin@listo365.com",
            password,
            current_app.config.get("ADMIN_NAME") or "Admin",
        )
        token = token_service.issue_token(user)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 500
    except RuntimeError:
        current_app.logger.exception("Bootstrap failed")
        return jsonify({"error": "Bootstrap failed"}), 500

    return jsonify({
        "ok": True,
        "user": {"id": user.id, "email": user.email, "role": user.role},
        "token": token,
    })
