"""Error handlers for the application."""
import requests
from flask import jsonify
from werkzeug.exceptions import HTTPException

from authz_bridge.core.exceptions import (
    AuthorizationStoreError,
    MatrixValidationError,
    ReconciliationCancelled,
)
from authz_bridge.core.keycloak import (
    GroupNotFoundError,
    KeycloakAPIError,
    RealmNotFoundError,
)

# Keycloak statuses forwarded as-is; anything else is an upstream failure
_FORWARDED_KEYCLOAK_STATUSES = {401, 403, 404}


def _error(status: int, error: str, message: str):
    return jsonify({"error": error, "message": message}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(MatrixValidationError)
    def invalid_matrix(error):
        """Client submitted a matrix breaking a tenancy or structural rule."""
        return _error(400, "Bad Request", str(error))

    @app.errorhandler(GroupNotFoundError)
    @app.errorhandler(RealmNotFoundError)
    def not_found(error):
        return _error(404, "Not Found", str(error))

    @app.errorhandler(KeycloakAPIError)
    def keycloak_error(error):
        """Forward auth/not-found answers from Keycloak, map the rest to 502."""
        if error.status_code in _FORWARDED_KEYCLOAK_STATUSES:
            return _error(error.status_code, "Keycloak Error", error.message or str(error))
        app.logger.error(f"Keycloak error: {error}")
        return _error(502, "Bad Gateway", "Identity provider request failed")

    @app.errorhandler(requests.RequestException)
    def keycloak_unreachable(error):
        app.logger.error(f"Keycloak unreachable: {error}")
        return _error(502, "Bad Gateway", "Identity provider unreachable")

    @app.errorhandler(ReconciliationCancelled)
    def cancelled(error):
        return _error(409, "Conflict", str(error))

    @app.errorhandler(AuthorizationStoreError)
    def store_error(error):
        app.logger.error(f"Authorization store error: {error}", exc_info=True)
        return _error(500, "Internal Server Error", "Authorization store unavailable")

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return _error(error.code or 500, error.name, error.description or error.name)

        # ALWAYS log the error (even in production) - logs are secure
        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return _error(500, "Internal Server Error", "An unexpected error occurred")
