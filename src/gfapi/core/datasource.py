"""
Request and result types shared by the pipeline.

A RequestSpec describes one outbound call. A call ends in a Page (payload
plus the cursor for the next call), the EMPTY sentinel, or an exception.
"""
# [CTX:PBI-1:1-1:IFACE]

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlencode


def query_string(params: Optional[Mapping[str, Any]]) -> str:
    """Return ``?a=1&b=2`` for non-None params, or an empty string."""
    if not params:
        return ""
    filtered = {k: v for k, v in params.items() if v is not None}
    qs = urlencode(filtered, doseq=True)
    return f"?{qs}" if qs else ""


@dataclass
class RequestSpec:
    """
    Specification for an HTTP request.

    Attributes:
        url: URL without query string, or a complete continuation URL
        method: HTTP method (GET, POST, PUT, PATCH)
        headers: HTTP headers as key-value pairs
        query_params: Query string parameters
        body: Optional JSON body for POST/PUT/PATCH requests
        authenticated: Whether an Authorization header is attached
    """
    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    authenticated: bool = True

    @property
    def full_url(self) -> str:
        return f"{self.url}{query_string(self.query_params)}"


@dataclass(frozen=True)
class Page:
    """
    A successful result.

    Attributes:
        data: Payload of the response
        next_cursor: Value that resumes traversal, None when this is the last page
    """
    data: Any
    next_cursor: Optional[str] = None


class _Empty:
    """Successful response carrying no further data."""

    _instance: Optional["_Empty"] = None

    def __new__(cls) -> "_Empty":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY"

    def __reduce__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()
