"""
Response normalization.
[CTX:PBI-1:1-5:RESULT]

Two API families report success differently:
- PRIMARY (marketplace API): ``{"status": "SUCCESS", "data": ..., "next_page": url}``
  and ``{"status": "FAIL", "error": {"code": 422, "message": "..."}}``
- INVENTORY (Steam inventory): ``{"success": 1, "assets": [...], "more_items": 1,
  "last_assetid": "99"}``

Each family is a ResponseShape. normalize() classifies a RawResponse into a
Page, EMPTY, or a raised ApiError.
"""
import json
import logging
from dataclasses import dataclass
from typing import AbstractSet, Any, Callable, Mapping, MutableMapping, Optional, Union

from ..log import TRACE
from .datasource import EMPTY, Page, _Empty
from .errors import ApiError
from .pagination import advance
from .transport import RawResponse

logger = logging.getLogger(__name__)

NormalizedResult = Union[Page, _Empty]


def is_null(value: Any) -> bool:
    return value is None


def is_empty_list(value: Any) -> bool:
    """True for None or an empty list/tuple."""
    return value is None or (isinstance(value, (list, tuple)) and len(value) == 0)


@dataclass(frozen=True)
class ResponseShape:
    """
    How one API family encodes success, payload, cursor and errors.

    Attributes:
        name: Family name used in logs
        cursor_field: Query key holding the cursor between calls
        cursor_is_url: True if the cursor replaces the whole request URL
        is_success: Predicate over the response body
        is_exhausted: True when the body signals no further data
        payload: Extracts the value handed to the caller
        next_cursor: Extracts the cursor for the following call
        error: Extracts the structured error object, if the family has one
    """
    name: str
    cursor_field: str
    cursor_is_url: bool
    is_success: Callable[[Mapping[str, Any]], bool]
    is_exhausted: Callable[[Mapping[str, Any]], bool]
    payload: Callable[[Mapping[str, Any]], Any]
    next_cursor: Callable[[Mapping[str, Any]], Optional[str]]
    error: Callable[[Mapping[str, Any]], Optional[Mapping[str, Any]]]


def _primary_error(data: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    error = data.get("error")
    return error if isinstance(error, Mapping) else None


PRIMARY = ResponseShape(
    name="primary",
    cursor_field="nextPage",
    cursor_is_url=True,
    is_success=lambda data: data.get("status") == "SUCCESS",
    is_exhausted=lambda data: is_null(data.get("next_page")) and is_empty_list(data.get("data")),
    payload=lambda data: data.get("data"),
    next_cursor=lambda data: data.get("next_page"),
    error=_primary_error,
)

INVENTORY = ResponseShape(
    name="inventory",
    cursor_field="start_assetid",
    cursor_is_url=False,
    is_success=lambda data: bool(data.get("success")),
    is_exhausted=lambda data: is_null(data.get("more_items")) and is_empty_list(data.get("assets")),
    payload=lambda data: data,
    next_cursor=lambda data: data.get("last_assetid"),
    error=lambda data: None,
)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def classify(raw: RawResponse, shape: ResponseShape = PRIMARY) -> NormalizedResult:
    """
    Classify a response without touching any query mapping.

    Args:
        raw: Response from the transport
        shape: API family of the endpoint

    Returns:
        Page(payload, next_cursor) or EMPTY

    Raises:
        ApiError: If the response reports failure
    """
    data = raw.data if isinstance(raw.data, Mapping) else {}

    if shape.is_success(data):
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, f"SUCCESS: {_dump(data)}")

        if shape.is_exhausted(data):
            return EMPTY

        return Page(data=shape.payload(data), next_cursor=shape.next_cursor(data))

    error = ApiError.from_response(shape.error(data), raw.status_code, raw.status_message)
    logger.log(
        TRACE,
        f"FAIL: statusCode={error.status_code} statusMessage={error.status_message}",
    )
    raise error


def normalize(
    raw: RawResponse,
    shape: ResponseShape = PRIMARY,
    query: Optional[MutableMapping[str, Any]] = None,
    visited: Optional[AbstractSet[str]] = None,
) -> Any:
    """
    Classify a response and hand the cursor back through ``query``.

    Args:
        raw: Response from the transport
        shape: API family of the endpoint
        query: Caller's query mapping; its cursor field is overwritten on success
        visited: Cursors already fetched in this traversal

    Returns:
        The payload, or EMPTY when there is no more data

    Raises:
        ApiError: If the response reports failure
    """
    result = classify(raw, shape)
    if result is EMPTY:
        return EMPTY
    if query is not None:
        advance(query, shape, result, visited)
    return result.data
