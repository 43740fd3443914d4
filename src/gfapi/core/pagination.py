"""
Cursor protocol for list endpoints.
[CTX:PBI-1:1-5:PAGE]

A caller keeps one query dict per traversal and passes it to every call:

    query = {"status": "received", "limit": 20}
    while (escrows := await api.escrow_mine_get(query)) is not EMPTY:
        ...

Each successful call writes the cursor for the next call into
``query[shape.cursor_field]``. A cursor set to None means the previous page
was the last one, and the next call returns EMPTY without a request.
A cursor pointing at a page already fetched in the same traversal is
treated the same way.
"""
import logging
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    MutableMapping,
    Optional,
)

from .datasource import EMPTY, Page

if TYPE_CHECKING:
    from .result import ResponseShape

logger = logging.getLogger(__name__)

Query = MutableMapping[str, Any]


def is_exhausted(query: Optional[Query], shape: "ResponseShape") -> bool:
    """True if the caller's cursor was explicitly set to None (or "")."""
    return (
        query is not None
        and shape.cursor_field in query
        and query[shape.cursor_field] in (None, "")
    )


def continuation_url(query: Optional[Query], shape: "ResponseShape") -> Optional[str]:
    """Return the stored next-page URL for families whose cursor is a URL."""
    if query is None or not shape.cursor_is_url:
        return None
    return query.get(shape.cursor_field) or None


def filter_params(query: Optional[Query], shape: "ResponseShape") -> dict[str, Any]:
    """
    Query parameters for building the first request URL.

    A URL cursor is never sent as a filter; other cursors (e.g. the inventory
    ``start_assetid``) are ordinary parameters.
    """
    if not query:
        return {}
    return {
        k: v
        for k, v in query.items()
        if not (shape.cursor_is_url and k == shape.cursor_field)
    }


def advance(
    query: Query,
    shape: "ResponseShape",
    page: Page,
    visited: Optional[AbstractSet[str]] = None,
) -> None:
    """
    Write the cursor from ``page`` into ``query``.

    A cursor equal to the one just used, or to any cursor in ``visited``,
    points at a page already fetched. It is cleared instead, so the next
    call returns EMPTY.

    Args:
        query: Caller's query mapping
        shape: API family of the endpoint
        page: Classified response
        visited: Cursors already fetched in this traversal
    """
    previous = query.get(shape.cursor_field)
    next_cursor = page.next_cursor if page.next_cursor != "" else None

    if next_cursor is not None and (
        next_cursor == previous or (visited is not None and next_cursor in visited)
    ):
        logger.warning(
            f"[CTX:PBI-1:1-5:PAGE] {shape.name} cursor did not advance "
            f"({shape.cursor_field}={next_cursor!r} already fetched), ending traversal"
        )
        next_cursor = None

    query[shape.cursor_field] = next_cursor


class CursorHistory:
    """
    Cursors already fetched, tracked per caller query mapping.

    Entries are keyed by the identity of the query dict and hold a reference
    to it, so an id cannot be reused while its entry exists. An entry is
    dropped when its traversal ends (cursor None), when the caller starts
    over with a query that has no cursor, or on clear().
    """

    def __init__(self):
        self._entries: dict[int, tuple[Query, set[str]]] = {}

    def visited(self, query: Query, shape: "ResponseShape") -> set[str]:
        """Return the visited set for ``query``, starting a new one for a fresh traversal."""
        entry = self._entries.get(id(query))
        if entry is None or shape.cursor_field not in query:
            entry = (query, set())
            self._entries[id(query)] = entry
        return entry[1]

    def finish(self, query: Query, shape: "ResponseShape") -> None:
        """Forget ``query`` once its cursor is None."""
        if query.get(shape.cursor_field) is None:
            self._entries.pop(id(query), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


async def iterate_pages(
    call: Callable[[Query], Awaitable[Any]],
    query: Optional[Query] = None,
) -> AsyncIterator[Any]:
    """
    Yield payloads from a paginated call until it returns EMPTY.

    Args:
        call: Paginated operation taking the query dict (e.g. api.listing_search)
        query: Query dict shared by every call; created if not given

    Yields:
        Each page's payload, in order
    """
    if query is None:
        query = {}
    while True:
        result = await call(query)
        if result is EMPTY:
            return
        yield result
