# Overview: Shared error-to-response mapping for the API blueprints.

from flask import current_app, jsonify

from ..extensions import db
from ..services.document_store import DocumentNotFoundError, VersionConflictError
from ..services.image_service import ImageCompressionError, ImageTooLargeError
from ..services.permission_service import PermissionDeniedError
from ..services.portal_service import ScopeError
from ..services.seal_lifecycle_service import LifecycleError
from ..validation import ConflictError, NotFoundError, ValidationError


# Most specific first
ERROR_STATUS = (
    (ImageTooLargeError, 413),
    (ImageCompressionError, 422),
    (ValidationError, 400),
    (ScopeError, 403),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (DocumentNotFoundError, 404),
    (VersionConflictError, 409),
    (LifecycleError, 409),
    (ConflictError, 409),
)


def error_response(exc: Exception, message: str):
    """
    Roll back and turn a service exception into a JSON error response.

    Unknown exceptions are logged with `message` and reported as 500
    without leaking details.
    """
    db.session.rollback()
    for exc_type, status in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return jsonify({"error": str(exc)}), status
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
