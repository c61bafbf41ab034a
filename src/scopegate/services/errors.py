"""Error taxonomy for admin sign-in and session checks.

Every failure the broker can produce maps to one of these classes. The API
layer renders them as ``{"ok": false, "error": message}`` with the class'
status code; ``message`` is always safe to show to a client.
"""

from typing import Any

from sqlalchemy.exc import DBAPIError

GENERIC_AUTHENTICATION_MESSAGE = "Invalid or expired credentials."
GENERIC_TOKEN_MESSAGE = "Invalid or expired session."
GENERIC_UNAVAILABLE_MESSAGE = (
    "Admin sign-in is temporarily unavailable. Please contact the site administrator."
)

PERMISSION_PATTERNS = (
    "insufficient permissions",
    "insufficient privilege",
    "permission denied",
    "must be owner of",
    'permission "create" required',
    'permission "update" required',
    'permission "delete" required',
    'permission "read" required',
    'permission "write" required',
)

# SQLSTATE codes for insufficient_privilege and invalid_authorization_specification
PERMISSION_SQLSTATES = {"42501", "28000", "28P01"}


class AdminAuthError(Exception):
    """Base class for failures surfaced at the API boundary."""

    status_code: int = 500
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AdminAuthError):
    """Missing or empty required input."""

    status_code = 400
    default_message = "Invalid request."


class AuthorizationError(AdminAuthError):
    """Email is not on the allowlist for the requested scope."""

    status_code = 403
    default_message = "Not authorized."


class AuthenticationError(AdminAuthError):
    """Credential proof failed.

    The public message never distinguishes a wrong secret from an expired or
    already-used one. ``reason`` carries the precise cause for logs and tests.
    """

    status_code = 403
    default_message = GENERIC_AUTHENTICATION_MESSAGE

    def __init__(
        self,
        reason: str,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message, status_code=status_code)


class ConfigurationError(AdminAuthError):
    """An operator action is required (missing secret, empty directory)."""

    status_code = 500
    default_message = "Admin sign-in is not configured."


class InfrastructureError(AdminAuthError):
    """The backing store is unreachable, timed out, or rejected the write."""

    status_code = 500
    default_message = GENERIC_UNAVAILABLE_MESSAGE

    def __init__(self, detail: str, *, permission_denied: bool = False) -> None:
        self.detail = detail
        self.permission_denied = permission_denied
        super().__init__(GENERIC_UNAVAILABLE_MESSAGE)


class RateLimitedError(AdminAuthError):
    """Too many attempts from one client or for one email."""

    status_code = 429
    default_message = "Too many attempts. Please try again later."

    def __init__(self, headers: dict[str, str]) -> None:
        self.headers = headers
        retry_after = headers.get("Retry-After", "60")
        super().__init__(f"Too many attempts. Please try again in {retry_after} seconds.")


def _status_code_of(error: BaseException) -> int | None:
    for attr in ("status_code", "statusCode"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response: Any = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _sqlstate_of(error: BaseException) -> str | None:
    orig = error.orig if isinstance(error, DBAPIError) else error
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if isinstance(value, str):
            return value
    return None


def is_permission_error(error: BaseException) -> bool:
    """Check whether a backend error is a permission/credential denial.

    Decided by status code (401/403), SQLSTATE, or well-known permission
    phrasing; arbitrary error text is never matched beyond these patterns.
    """
    if _status_code_of(error) in (401, 403):
        return True
    if _sqlstate_of(error) in PERMISSION_SQLSTATES:
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in PERMISSION_PATTERNS)
