# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service, token_service
from .services.token_service import AuthError


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _load_user_from_request():
    """
    Resolve the bearer token to a User.

    Raises AuthError when the header is missing, the token does not verify,
    or the subject no longer exists.
    """
    token = _bearer_token()
    if not token:
        raise AuthError("Authentication required")

    claims = token_service.decode_token(token)
    user = auth_service.get_user(token_service.subject_of(claims))
    if user is None:
        raise AuthError("User not found")
    return user, claims


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user (fresh from the database) and g.token_claims.
    Returns 401 if the header is missing, the token is invalid or expired,
    or the user was deleted.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            user, claims = _load_user_from_request()
        except AuthError as e:
            return jsonify({"error": str(e)}), 401

        g.current_user = user
        g.token_claims = claims
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an authenticated ADMIN.

    The role is read from the database row, not from the token, so a
    demotion takes effect on the next request.
    """
    @wraps(f)
    @require_auth
    def decorated_function(*args, **kwargs):
        if not g.current_user.is_admin:
            return jsonify({"error": "Forbidden"}), 403
        return f(*args, **kwargs)

    return decorated_function


def request_is_admin() -> bool:
    """
    Soft check for public routes that widen their output for admins
    (e.g. GET /products?all=1). Never raises; any problem means "not admin".
    """
    try:
        user, _claims = _load_user_from_request()
    except AuthError:
        return False
    return user.is_admin
