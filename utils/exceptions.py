"""Shared exception types for services and routes."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base exception for application-level errors."""

    status_code = 400
    code = "app_error"

    def __init__(self, detail: str, *, payload: dict[str, Any] | None = None):
        super().__init__(detail)
        self.detail = detail
        self.payload = payload or {}


class ValidationError(AppError):
    """Raised when request or payload validation fails."""

    code = "validation_error"


class NotFoundError(AppError):
    """Raised when a requested resource cannot be located."""

    status_code = 404
    code = "not_found"


class PermissionDeniedError(AppError):
    """Raised when the current user may not touch a resource."""

    status_code = 403
    code = "forbidden"


class ScryfallError(AppError):
    """Raised when the upstream card-data API fails."""

    status_code = 502
    code = "upstream_error"


class ConflictError(AppError):
    """Raised when a request clashes with work already in progress."""

    status_code = 409
    code = "conflict"
