"""Core request pipeline: auth, rate limiting, transport and normalization."""

from gfapi.core.auth import Authenticator, Credential, sign
from gfapi.core.config import (
    ClientConfig,
    TotpConfig,
    credential_from_env,
    load_config,
    validate_config,
)
from gfapi.core.datasource import EMPTY, Page, RequestSpec, query_string
from gfapi.core.errors import (
    ApiError,
    ConfigurationError,
    ConfigValidationError,
    GfApiError,
    TransportError,
)
from gfapi.core.executor import RequestExecutor
from gfapi.core.pagination import CursorHistory, advance, iterate_pages
from gfapi.core.rate_limiter import (
    FakeTimeProvider,
    RateLimiter,
    RateLimiterStats,
    RateLimitGuard,
    SystemTimeProvider,
    TimeProvider,
)
from gfapi.core.result import INVENTORY, PRIMARY, ResponseShape, classify, normalize
from gfapi.core.transport import AiohttpTransport, RawResponse, Transport

__all__ = [
    # auth
    "Authenticator",
    "Credential",
    "sign",
    # config
    "ClientConfig",
    "TotpConfig",
    "credential_from_env",
    "load_config",
    "validate_config",
    # datasource
    "EMPTY",
    "Page",
    "RequestSpec",
    "query_string",
    # errors
    "ApiError",
    "ConfigurationError",
    "ConfigValidationError",
    "GfApiError",
    "TransportError",
    # executor
    "RequestExecutor",
    # pagination
    "CursorHistory",
    "advance",
    "iterate_pages",
    # rate_limiter
    "FakeTimeProvider",
    "RateLimiter",
    "RateLimiterStats",
    "RateLimitGuard",
    "SystemTimeProvider",
    "TimeProvider",
    # result
    "INVENTORY",
    "PRIMARY",
    "ResponseShape",
    "classify",
    "normalize",
    # transport
    "AiohttpTransport",
    "RawResponse",
    "Transport",
]
