"""Async client for the Gameflip marketplace API."""

from gfapi.client import GfApi
from gfapi.constants import (
    BASE_URL,
    CATEGORY,
    ESCROW_STATUS,
    LISTING_STATUS,
    STEAM_APP_ID,
    STEAM_CONTEXT_ID,
)
from gfapi.core import (
    EMPTY,
    ApiError,
    ConfigurationError,
    GfApiError,
    TransportError,
)
from gfapi.log import TRACE, configure_logging
from gfapi.util import now, query_string, sleep

__version__ = "0.1.0"

__all__ = [
    "GfApi",
    "EMPTY",
    # errors
    "ApiError",
    "ConfigurationError",
    "GfApiError",
    "TransportError",
    # constants
    "BASE_URL",
    "CATEGORY",
    "ESCROW_STATUS",
    "LISTING_STATUS",
    "STEAM_APP_ID",
    "STEAM_CONTEXT_ID",
    # logging
    "TRACE",
    "configure_logging",
    # util
    "now",
    "query_string",
    "sleep",
]
