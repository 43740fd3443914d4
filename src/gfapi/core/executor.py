"""
Request execution pipeline.
[CTX:PBI-1:1-8:EXEC]

RequestExecutor.execute() runs one call end to end:
1. Cursor short-circuit for exhausted list traversals (no request)
2. Rate limiter grant
3. Authorization header (after the grant, so the code is fresh)
4. Transport call
5. Normalization into payload / EMPTY / ApiError

Errors are never retried or swallowed.
"""
import logging
import time
from typing import AbstractSet, Any, MutableMapping, Optional

from .auth import Authenticator
from .datasource import EMPTY, RequestSpec
from .errors import ApiError, TransportError
from .pagination import CursorHistory, continuation_url, filter_params, is_exhausted
from .rate_limiter import RateLimiter
from .result import PRIMARY, ResponseShape, normalize
from .telemetry import TelemetryOutcome, create_event, get_recorder
from .transport import Transport

logger = logging.getLogger(__name__)


class RequestExecutor:
    """
    Owns the pieces one client shares across all of its calls.

    Attributes:
        authenticator: Produces Authorization header values
        rate_limiter: Shared limiter gating every request start
        transport: Performs HTTP calls
        cursor_history: Cursors fetched by each open list traversal
    """

    def __init__(
        self,
        authenticator: Optional[Authenticator],
        rate_limiter: RateLimiter,
        transport: Transport,
    ):
        self.authenticator = authenticator
        self.rate_limiter = rate_limiter
        self.transport = transport
        self.cursor_history = CursorHistory()

    def _headers(self, spec: RequestSpec) -> dict[str, str]:
        headers = dict(spec.headers)
        if spec.authenticated:
            if self.authenticator is None:
                raise ValueError("Authenticated request without an authenticator")
            headers["Authorization"] = self.authenticator.header()
        return headers

    async def execute(
        self,
        spec: RequestSpec,
        shape: ResponseShape = PRIMARY,
        query: Optional[MutableMapping[str, Any]] = None,
        visited: Optional[AbstractSet[str]] = None,
    ) -> Any:
        """
        Run a request through the pipeline.

        Args:
            spec: Request to send
            shape: API family used to read the response
            query: Caller's cursor mapping for list calls
            visited: Cursors already fetched in this traversal

        Returns:
            Payload, or EMPTY when there is no more data

        Raises:
            ApiError: Server reported failure
            TransportError: The HTTP call failed
        """
        url = spec.full_url
        await self.rate_limiter.acquire(url)

        if spec.body is not None:
            logger.debug(f"{spec.method} {url} data={spec.body!r}")
        else:
            logger.debug(f"{spec.method} {url}")

        headers = self._headers(spec)
        started = time.monotonic()
        outcome = TelemetryOutcome.ERROR
        status: Optional[int] = None
        try:
            raw = await self.transport.send(spec.method, url, headers, spec.body)
            status = raw.status_code
            result = normalize(raw, shape, query, visited)
            outcome = TelemetryOutcome.EMPTY if result is EMPTY else TelemetryOutcome.SUCCESS
            return result
        except ApiError as e:
            outcome = TelemetryOutcome.FAIL
            status = e.status_code
            raise
        except TransportError:
            outcome = TelemetryOutcome.TRANSPORT_ERROR
            raise
        finally:
            get_recorder().record(
                create_event(
                    url=url,
                    method=spec.method,
                    outcome=outcome,
                    status=status,
                    elapsed_ms=(time.monotonic() - started) * 1000.0,
                )
            )

    async def execute_list(
        self,
        url: str,
        query: Optional[MutableMapping[str, Any]],
        shape: ResponseShape = PRIMARY,
        authenticated: bool = True,
    ) -> Any:
        """
        Fetch the next page of a list endpoint.

        Every cursor fetched is remembered for the traversal; a response
        pointing back at one of them ends the traversal.

        Args:
            url: Endpoint URL without query string
            query: Caller-owned filters plus cursor; updated in place
            shape: API family of the endpoint
            authenticated: Whether to attach the Authorization header

        Returns:
            Payload of the next page, or EMPTY when traversal is over
        """
        if is_exhausted(query, shape):
            logger.debug(f"[CTX:PBI-1:1-5:PAGE] {url} cursor exhausted, skipping request")
            get_recorder().record(
                create_event(url=url, method="GET", outcome=TelemetryOutcome.SKIPPED)
            )
            return EMPTY

        next_url = continuation_url(query, shape)
        if next_url:
            spec = RequestSpec(url=next_url, authenticated=authenticated)
        else:
            spec = RequestSpec(
                url=url,
                query_params=filter_params(query, shape),
                authenticated=authenticated,
            )

        if query is None:
            return await self.execute(spec, shape)

        visited = self.cursor_history.visited(query, shape)
        used = spec.full_url if shape.cursor_is_url else query.get(shape.cursor_field)
        if used is not None:
            visited.add(used)
        try:
            return await self.execute(spec, shape, query, visited)
        finally:
            self.cursor_history.finish(query, shape)

    async def close(self) -> None:
        self.cursor_history.clear()
        await self.transport.close()
