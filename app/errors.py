from __future__ import annotations


class DomainError(ValueError):
    """Base for failures that are reported to the caller with a readable message."""

    status_code = 400


class ValidationError(DomainError):
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    status_code = 409


class ExternalSourceError(DomainError):
    status_code = 502


class SourceUnavailableError(ExternalSourceError):
    pass


class SourceAuthError(ExternalSourceError):
    pass


class DispatchFailure(DomainError):
    """Raised by a message dispatcher that could not reach its provider.

    The status workflow records it as a FAILED transition instead of
    propagating it.
    """

    status_code = 502


class RowSkipped(Exception):
    """Soft condition: a sheet row carries no usable data."""
