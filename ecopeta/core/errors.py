"""
Error taxonomy shared by the service layer.

Services raise these; `ecopeta.main` turns them into the JSON envelope
`{"success": false, "error": "<message>"}` with the matching status code.
"""

from __future__ import annotations


class EcoPetaError(Exception):
    """Base class for all expected, user-facing failures."""

    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(EcoPetaError):
    """Missing/malformed input, illegal transition or broken business rule."""

    status_code = 400


class AuthorizationError(EcoPetaError):
    """Wrong role or not the owner of the resource."""

    status_code = 403


class NotFoundError(EcoPetaError):
    """Unknown id, or an id the caller is not allowed to see."""

    status_code = 404


class DownstreamError(EcoPetaError):
    """A database call failed; the cause is logged, not returned."""

    status_code = 500
