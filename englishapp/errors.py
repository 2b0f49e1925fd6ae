"""Application errors and their JSON rendering."""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base error rendered as ``{message, error?}`` with ``status_code``."""

    status_code = 500

    def __init__(self, message, error=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        body = {'message': self.message}
        if self.error is not None:
            body['error'] = self.error
        return body


class ValidationError(AppError):
    status_code = 400


class ConflictError(AppError):
    status_code = 400


class AuthError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class UpstreamError(AppError):
    """Failure reported by the chat-completion API; status is passed through."""

    status_code = 502


class StorageError(AppError):
    status_code = 500

    def __init__(self, message, cause=None):
        super().__init__(message, error=str(cause) if cause is not None else None)
        self.cause = cause


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(exc):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.message, exc.error)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'message': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.exception("Unhandled error")
        return jsonify({'message': 'Internal server error', 'error': str(exc)}), 500
