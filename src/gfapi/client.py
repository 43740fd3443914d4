"""
Marketplace API client.

Thin named operations over the request pipeline. Every method returns the
pipeline's result unchanged: the payload, EMPTY for a finished list
traversal, or raises ApiError / TransportError.
"""
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, MutableMapping, Optional, Union

from .constants import ESCROW_STATUS, steam_context_id
from .core.auth import Authenticator, Credential
from .core.config import ClientConfig, load_config
from .core.datasource import RequestSpec
from .core.executor import RequestExecutor
from .core.pagination import iterate_pages
from .core.rate_limiter import RateLimiter
from .core.result import INVENTORY, PRIMARY
from .core.transport import AiohttpTransport, Transport
from .log import LOGGER_NAME, set_level

logger = logging.getLogger(__name__)

Query = MutableMapping[str, Any]


class GfApi:
    """
    Client for one API key.

    The client owns its rate limiter, so every call made through one
    instance, concurrent or not, is paced by the same limiter.

    Example:
        async with GfApi("test-0123456789abcde", {"secret": "JBSWY3DPEHPK3PXP"}) as api:
            profile = await api.profile_get()
    """

    def __init__(
        self,
        api_key: str,
        secret: Union[str, Mapping[str, Any]],
        *,
        log_level: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        rate_limiter: Optional[RateLimiter] = None,
        now_fn: Callable[[], float] = time.time,
    ):
        """
        Create a client.

        Args:
            api_key: API key, e.g. ``test-0123456789abcde``
            secret: TOTP secret string, or mapping such as
                ``{"secret": "...", "algorithm": "sha1", "digits": 6, "period": 30}``
            log_level: ``trace`` (logs payloads), ``debug`` (logs requests),
                ``info``, ``warn``, ``error`` or ``fatal``. Sets the level of
                the shared ``gfapi`` logger, so it applies to every client in
                the process. If None, the config level is applied only when
                that logger has no level yet.
            config: Client configuration, loaded from config/gfapi.yml if None
            transport: HTTP transport, aiohttp by default
            rate_limiter: Limiter to use instead of one built from config
            now_fn: Clock used for TOTP codes

        Raises:
            ConfigurationError: For a malformed key prefix or secret
        """
        self.config = config or load_config()
        self.credential = Credential.build(api_key, secret, defaults=self.config.totp.to_dict())
        self.base_url = self.config.base_url_for(self.credential.environment)

        if log_level is not None:
            set_level(log_level)
        elif logging.getLogger(LOGGER_NAME).level == logging.NOTSET:
            set_level(self.config.log_level)

        self._executor = RequestExecutor(
            authenticator=Authenticator(self.credential, now_fn=now_fn),
            rate_limiter=rate_limiter
            or RateLimiter.from_milliseconds(self.config.rate_limit_interval_ms),
            transport=transport or AiohttpTransport(),
        )

    @property
    def api_key(self) -> str:
        return self.credential.key

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._executor.rate_limiter

    async def __aenter__(self) -> "GfApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._executor.close()

    # ---------
    # Endpoints
    # ---------

    def profile_get(self) -> Awaitable[Any]:
        """Get your profile."""
        return self._get("account/me/profile")

    def listing_get(self, id: str) -> Awaitable[Any]:
        """
        Get a single listing. Owners can view any listing they own; others
        only publicly viewable listings.
        """
        return self._get(f"listing/{id}")

    def listing_search(self, query: Query) -> Awaitable[Any]:
        """
        Search listings.

        Returns:
            List of listings, or EMPTY if none left. ``query`` is modified.
        """
        return self._get_list("listing", query)

    def listing_post(self, data: Mapping[str, Any]) -> Awaitable[Any]:
        """Create a listing (starts in draft status)."""
        return self._post("listing", data)

    def listing_patch(self, id: str, ops: list[Mapping[str, Any]]) -> Awaitable[Any]:
        """
        Update a listing with JSON-patch operations, e.g.
        ``[{"op": "replace", "path": "/status", "value": "onsale"}]``.
        """
        return self._patch(f"listing/{id}", ops)

    def escrow_mine_get(self, query: Query) -> Awaitable[Any]:
        """
        Your escrows (subset of fields) by status.

        Args:
            query: ``status`` (received, delivered, returned) and ``limit``
                (default 20, max 100). Modified by the call.

        Returns:
            List of escrows, or EMPTY if none left
        """
        return self._get_list("steam/escrow/mine", query)

    def escrow_get(self, id: str) -> Awaitable[Any]:
        """
        Escrow data for a listing you own.

        Escrow status moves ``received <-> deliver_pending -> delivered`` or
        ``received -> return_pending -> returned``.
        """
        return self._get(f"steam/escrow/{id}")

    def check_trade_ban(self) -> Awaitable[Any]:
        """
        Check for a Steam trade ban or hold.

        Raises:
            ApiError: 422 if you have a trade ban or hold
        """
        return self._get("steam/escrow/hold")

    def bulk_mine_get(self, query: Optional[Query] = None) -> Awaitable[Any]:
        """
        Your bulk objects (subset of fields) by status.

        Args:
            query: ``status`` (start, receive_pending, received, listed,
                steam_escrow, trade_hold; default listed) and ``limit``.
                Modified by the call; pass the same dict to paginate.

        Returns:
            List of bulk objects, or EMPTY if none left
        """
        if query is None:
            query = {"status": ESCROW_STATUS.LISTED}
        return self._get_list("steam/bulk/mine", query)

    def bulk_get(self, id: str) -> Awaitable[Any]:
        """
        Get a bulk object.

        Bulk status moves ``start <-> receive_pending -> received -> listed``,
        with ``steam_escrow`` between receive_pending and received, and
        ``trade_hold`` between received and listed.
        """
        return self._get(f"steam/bulk/{id}")

    def bulk_post(self) -> Awaitable[Any]:
        """Create a bulk object. The field you need from the result is ``id``."""
        return self._post("steam/bulk")

    def bulk_put(self, id: str, data: Optional[list[Mapping[str, Any]]] = None) -> Awaitable[Any]:
        """
        Start a trade offer for items, or refresh the bulk object if ``data``
        is None.

        Args:
            id: Bulk id from bulk_post()
            data: Items as ``[{"id": asset_id, "appid": ..., "price": cents,
                "market_hash_name": ...}]``
        """
        return self._put(f"steam/bulk/{id}", data)

    def steam_inventory_get(
        self,
        profile_id: str,
        app_id: str,
        query: Optional[Query] = None,
    ) -> Awaitable[Any]:
        """
        Public Steam inventory. Not part of the marketplace API.

        Args:
            profile_id: Steam profile id
            app_id: Game app id, e.g. STEAM_APP_ID.CSGO
            query: ``l`` (language), ``count``; ``start_assetid`` is managed
                by the call

        Returns:
            The whole inventory response, or EMPTY if none left
        """
        url = self.config.inventory_url.format(
            profile_id=profile_id,
            app_id=app_id,
            context_id=steam_context_id(app_id),
        )
        return self._executor.execute_list(
            url, query if query is not None else {}, shape=INVENTORY, authenticated=False
        )

    def pages(
        self,
        call: Callable[[Query], Awaitable[Any]],
        query: Optional[Query] = None,
    ) -> AsyncIterator[Any]:
        """
        Iterate a paginated method, e.g. ``async for page in api.pages(api.listing_search, q)``.
        """
        return iterate_pages(call, query)

    # ----------------
    # Request helpers
    # ----------------

    def _url(self, uri: str) -> str:
        return f"{self.base_url}/{uri}"

    def _get(self, uri: str, query: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        spec = RequestSpec(url=self._url(uri), query_params=dict(query or {}))
        return self._executor.execute(spec, PRIMARY)

    def _get_list(self, uri: str, query: Query) -> Awaitable[Any]:
        return self._executor.execute_list(self._url(uri), query, shape=PRIMARY)

    def _post(self, uri: str, data: Any = None) -> Awaitable[Any]:
        spec = RequestSpec(url=self._url(uri), method="POST", body=data or None)
        return self._executor.execute(spec, PRIMARY)

    def _put(self, uri: str, data: Any = None) -> Awaitable[Any]:
        spec = RequestSpec(url=self._url(uri), method="PUT", body=data or None)
        return self._executor.execute(spec, PRIMARY)

    def _patch(self, uri: str, data: Any) -> Awaitable[Any]:
        spec = RequestSpec(url=self._url(uri), method="PATCH", body=data)
        return self._executor.execute(spec, PRIMARY)
