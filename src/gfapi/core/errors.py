"""
Error taxonomy for the request pipeline.
[CTX:PBI-1:1-1:ERR]

Three failure kinds reach callers:
- ConfigurationError: bad credential or config, raised before any request
- TransportError: the HTTP call itself failed (DNS, refused, timeout)
- ApiError: the server answered and reported a failure
"""
from http import HTTPStatus
from typing import Any, Mapping, Optional


class GfApiError(Exception):
    """Base class for all gfapi errors."""


class ConfigurationError(GfApiError):
    """Credential, secret or client configuration is malformed."""


class ConfigValidationError(ConfigurationError, ValueError):
    """A configuration file loaded but failed validation."""


class TransportError(GfApiError):
    """Network-level failure below the HTTP layer."""

    def __init__(self, method: str, url: str, cause: BaseException):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {cause!r}")


def _first_present(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _as_status_code(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _reason_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Unknown Error"


class ApiError(GfApiError):
    """
    Server-signalled failure.

    Attributes:
        status_code: Numeric status, application code when the server sent one
        status_message: Human readable message
    """

    def __init__(self, status_code: int, status_message: Optional[str] = None):
        self.status_code = status_code
        self.status_message = status_message or _reason_phrase(status_code)
        super().__init__(f"{self.status_code} {self.status_message}")

    @property
    def expose(self) -> bool:
        """True for client errors whose message is safe to show users."""
        return self.status_code < 500

    @classmethod
    def from_response(
        cls,
        error: Optional[Mapping[str, Any]],
        status_code: Optional[int],
        status_message: Optional[str],
    ) -> "ApiError":
        """
        Build an ApiError from a structured error object and raw HTTP status.

        The structured error's ``code``/``message`` win over the raw status
        line whenever present.

        Args:
            error: Application error object (may be None)
            status_code: Raw HTTP status code
            status_message: Raw HTTP reason phrase

        Returns:
            ApiError with an integer status code (500 if nothing usable)
        """
        error = error or {}
        code = _first_present(
            _as_status_code(error.get("code")),
            _as_status_code(status_code),
            500,
        )
        message = _first_present(error.get("message"), status_message)
        return cls(code, message)

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code!r}, status_message={self.status_message!r})"
