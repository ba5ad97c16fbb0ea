"""Error types raised by the deployment engine.

Every error carries the HTTP status the API layer answers with, so route
handlers can let them propagate and a single exception handler renders them.
"""
from __future__ import annotations


class SitePilotError(Exception):
    """Base class for all engine errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SitePilotError):
    """Bad input. Raised before any filesystem mutation."""

    status_code = 400


class AuthError(SitePilotError):
    status_code = 401


class Unauthenticated(AuthError):
    """Missing or invalid credential or token."""

    status_code = 401


class Forbidden(AuthError):
    """Valid identity without access to the target."""

    status_code = 403


class NotFoundError(SitePilotError):
    status_code = 404


class PayloadTooLarge(SitePilotError):
    status_code = 413


class DeployError(SitePilotError):
    """A deploy could not be completed. The live site is left as it was."""

    status_code = 500


class UnsafeEntryError(DeployError):
    """An archive entry resolves outside the extraction directory."""

    def __init__(self, entry_name: str):
        super().__init__(f"Archive entry escapes target directory: {entry_name!r}")
        self.entry_name = entry_name


class StorageError(SitePilotError):
    """Filesystem or database I/O failure."""

    status_code = 500
