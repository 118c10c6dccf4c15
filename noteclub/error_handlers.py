from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError

from .errors import (
    AccessDenied,
    AppError,
    InvalidStateError,
    NotFoundError,
    PersistenceConflictError,
    UserNotInRotationError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(error):
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(UserNotInRotationError)
def handle_not_in_rotation_error(error):
    """Handles turn overrides aimed at users outside the rotation."""
    current_app.logger.warning(f"Rotation Error: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(AccessDenied)
def handle_access_denied(error):
    """Handles requests the caller is not allowed to make."""
    current_app.logger.warning(f"Access Denied: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors, including unresolvable users."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(InvalidStateError)
def handle_invalid_state_error(error):
    """Handles operations on a rotation that cannot take them."""
    current_app.logger.warning(f"Rotation unavailable: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(PersistenceConflictError)
def handle_conflict_error(error):
    """Handles transactions that lost to a concurrent update."""
    current_app.logger.warning(f"Persistence Conflict: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"error": "Not found."}), 404


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return jsonify({"error": "Internal server error."}), 500


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or a missing
    X-CSRFToken header.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return jsonify({"error": "Your session may have expired. Please try again."}), 400
