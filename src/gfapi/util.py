"""Small helpers exposed alongside the client."""

import asyncio
from datetime import datetime, timedelta, timezone

from .core.datasource import query_string

__all__ = ["now", "query_string", "sleep"]


def now(offset_ms: float = 0) -> str:
    """Current UTC time (plus ``offset_ms``) in RFC 3339 format, e.g. ``2017-01-21T02:29:53.511Z``."""
    moment = datetime.now(timezone.utc) + timedelta(milliseconds=offset_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)
