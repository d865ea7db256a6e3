"""
Error taxonomy.

Every component raises one of these and never recovers locally; the CLI
driver is the only place that catches ``AgonpError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .core.session import SessionResponse


class AgonpError(Exception):
    """Base class for all errors raised by agonp_dl."""

    pass


class ValidationError(AgonpError):
    """A caller-supplied identifier is malformed."""

    pass


class TransportError(AgonpError):
    """Network-level failure (DNS, connection, timeout)."""

    pass


class HttpError(AgonpError):
    """The site answered with a status other than 200."""

    def __init__(
        self,
        status: int,
        message: str,
        response: Optional[SessionResponse] = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.response = response


class AuthError(AgonpError):
    """Login was rejected or the CSRF token could not be obtained."""

    pass


class SiteError(AgonpError):
    """The site rendered its error page."""

    pass


class ParseError(AgonpError):
    """Expected embedded data or JSON payload is absent or malformed."""

    pass


class ApiError(AgonpError):
    """The JSON API reported ``success != true``."""

    def __init__(self, message: Optional[str]):
        super().__init__(f"apiError, message: {message}")
        self.message = message


class SinkError(AgonpError):
    """Writing the downloaded body to its sink failed."""

    pass


__all__ = [
    "AgonpError",
    "ValidationError",
    "TransportError",
    "HttpError",
    "AuthError",
    "SiteError",
    "ParseError",
    "ApiError",
    "SinkError",
]
