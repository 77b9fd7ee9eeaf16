# Overview: JSON error handlers shared by every blueprint.

from flask import current_app, jsonify, request
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from .services.concurrency import ConcurrentUpdateError
from .validation import ConflictError, NotFoundError, ValidationError


def register_error_handlers(app) -> None:
    """
    Map service exceptions to status codes:
    ValidationError 400, NotFoundError 404, ConflictError 409,
    anything unexpected 500 with the traceback logged.
    """

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return jsonify({"error": "validation_error", "message": str(e), "details": e.details}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({"error": "not_found", "message": str(e)}), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(e: ConflictError):
        return jsonify({"error": "conflict", "message": str(e)}), 409

    @app.errorhandler(ConcurrentUpdateError)
    def handle_concurrent_update(e: ConcurrentUpdateError):
        return jsonify({"error": "conflict", "message": str(e)}), 409

    @app.errorhandler(OperationalError)
    def handle_db_unavailable(e: OperationalError):
        current_app.logger.exception("Database error on %s %s", request.method, request.path)
        return jsonify({"error": "Database unavailable"}), 503

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        if e.code == 404:
            return jsonify({"error": "not_found", "path": request.path}), 404
        return jsonify({"error": e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500
