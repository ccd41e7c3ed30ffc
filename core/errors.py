"""
core/errors.py -- Application error taxonomy.

Every failure a request can end in is one of these classes. Each carries the
HTTP status and machine-readable code it maps to, so the exception handlers
in api/main.py render them without a lookup table:

  ValidationError   400  missing or invalid input
  AuthError         401  bad credentials, missing/invalid token, wrong role
  NotFoundError     404  missing resource
  ConflictError     400  duplicate admin bootstrap
  UpstreamError     500  image host or database failure

ConfigurationError is raised at process start (bad or missing settings) and
never reaches a request.

Errors are raised close to the point of detection and are terminal for the
request. Nothing retries.

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, or media/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class AuthError(AppError):
    """Authentication or authorization failure.

    code distinguishes the internal reason (e.g. "invalid_email" vs
    "invalid_password", "no_token" vs "token_failed"); every variant is
    surfaced as 401.
    """

    status_code = 401
    code = "unauthorized"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 400
    code = "conflict"


class UpstreamError(AppError):
    status_code = 500
    code = "upstream_error"


class ConfigurationError(AppError):
    code = "configuration_error"
