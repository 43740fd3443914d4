"""
HTTP transport for the request pipeline.
[CTX:PBI-1:1-4:HTTP]

Sends one request with aiohttp and hands back the decoded body plus the
status line. Failures below HTTP become TransportError; HTTP error statuses
are returned like any other response and classified later.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH")


@dataclass
class RawResponse:
    """
    Undecoded outcome of one HTTP call.

    Attributes:
        data: JSON-decoded body, None if the body was empty or not JSON
        status_code: HTTP status code
        status_message: HTTP reason phrase
    """
    data: Any
    status_code: Optional[int]
    status_message: Optional[str]


class Transport(Protocol):
    """Anything that can perform a request for the executor."""

    async def send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Any = None,
    ) -> RawResponse: ...

    async def close(self) -> None: ...


def content_type_for(method: str) -> str:
    return JSON_PATCH_CONTENT_TYPE if method.upper() == "PATCH" else JSON_CONTENT_TYPE


class AiohttpTransport:
    """
    Transport backed by a single aiohttp.ClientSession.

    The session is created on first use so the transport can be constructed
    outside a running event loop. A session passed in by the caller is not
    closed by close().
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
    ):
        """
        Args:
            session: Existing session to use
            timeout: Optional timeout for sessions this transport creates
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            kwargs: Dict[str, Any] = {}
            if self._timeout is not None:
                kwargs["timeout"] = self._timeout
            self._session = aiohttp.ClientSession(**kwargs)
            self._owns_session = True
        return self._session

    async def send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Any = None,
    ) -> RawResponse:
        """
        Perform the HTTP call.

        Args:
            method: GET, POST, PUT or PATCH
            url: Complete URL including query string
            headers: Request headers
            body: JSON-serializable body, sent only when not None

        Returns:
            RawResponse with decoded data and status line

        Raises:
            TransportError: On connection, DNS, timeout or payload failures
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method {method}")

        request_headers = dict(headers)
        data = None
        if body is not None:
            request_headers.setdefault("Content-Type", content_type_for(method))
            data = json.dumps(body)

        session = self._get_session()
        try:
            async with session.request(
                method, url, headers=request_headers, data=data
            ) as response:
                body_bytes = await response.read()
                return RawResponse(
                    data=_decode(body_bytes, url, response.charset),
                    status_code=response.status,
                    status_message=response.reason,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"[CTX:PBI-1:1-4:HTTP] {method} {url} failed: {e!r}")
            raise TransportError(method, url, e) from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


def _decode(body: bytes, url: str, charset: Optional[str] = None) -> Any:
    """JSON-decode a response body; None for empty, undecodable or non-JSON bodies."""
    try:
        text = body.decode(charset or "utf-8")
        if not text.strip():
            return None
        return json.loads(text)
    except (UnicodeDecodeError, LookupError, json.JSONDecodeError):
        logger.debug(f"[CTX:PBI-1:1-4:HTTP] Non-JSON body from {url}")
        return None
