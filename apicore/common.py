"""Shared request pipeline: build a JSON request, send it, classify the response."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Iterable
from urllib.parse import urlencode

import httpx
from pydantic import TypeAdapter, ValidationError

from apicore.config import get_settings
from apicore.errors import (
    APIError,
    DecodingError,
    InvalidQueryParams,
    InvalidRequest,
    InvalidRequestPayload,
    InvalidResponse,
    NoData,
    TransportError,
    UnexpectedData,
    UnexpectedStatusCode,
)
from apicore.model import (
    ContentType,
    EmptyRequestBody,
    EmptyResult,
    ExpectEmpty,
    HeaderLike,
    HTTPHeader,
    HTTPMethod,
    QueryItems,
    ResponseExpectation,
    coerce_status,
)

JSON_INDENT = 2

_QUERY_VALUE_TYPES = (str, int, float, bool, type(None))

logger = logging.getLogger(__name__)


def log_api_error(error: APIError, method: str, url: httpx.URL | str) -> None:
    """Emit the diagnostic line recorded for every failed request."""

    logger.error("%s %s: %s", method, url, error.description)


def _normalize_headers(headers: Iterable[HeaderLike] | None) -> list[tuple[str, str]]:
    normalized: list[tuple[str, str]] = []
    for header in headers or ():
        if isinstance(header, HTTPHeader):
            key, value = header.as_tuple()
        else:
            try:
                key, value = header
            except (TypeError, ValueError) as exc:
                raise InvalidRequest(f"malformed header {header!r}", exc) from exc
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidRequest(f"invalid header {key!r}: {value!r}")
        # Header lines are sent as ASCII and may not be split.
        line = key + value
        if not key or not line.isascii() or "\r" in line or "\n" in line:
            raise InvalidRequest(f"invalid header {key!r}: {value!r}")
        normalized.append((key, value))
    return normalized


def _resolve_method(method: HTTPMethod | str) -> str:
    try:
        return HTTPMethod(str(getattr(method, "value", method)).upper()).value
    except ValueError as exc:
        raise InvalidRequest(f"unsupported method {method!r}", exc) from exc


def _resolve_url(url: httpx.URL | str) -> httpx.URL:
    try:
        return httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidRequest(f"invalid URL {url!r}", exc) from exc


def resolve_expected_status(expected_status: HTTPStatus | int) -> HTTPStatus:
    try:
        return coerce_status(expected_status)
    except ValueError as exc:
        raise InvalidRequest(f"unsupported expected status {expected_status!r}", exc) from exc


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _apply_query_items(url: httpx.URL, query_items: QueryItems) -> httpx.URL:
    items: list[tuple[str, str]] = []
    for item in query_items:
        try:
            key, value = item
        except (TypeError, ValueError) as exc:
            raise InvalidQueryParams(f"malformed query item {item!r}") from exc
        if not isinstance(key, str) or not key:
            raise InvalidQueryParams(f"invalid query key {key!r}")
        if not isinstance(value, _QUERY_VALUE_TYPES):
            raise InvalidQueryParams(
                f"unsupported value for {key!r}: {type(value).__name__}"
            )
        items.append((key, _query_value(value)))

    # Repeated keys keep their position; an empty list clears the query.
    query = urlencode(items).encode("ascii") if items else None
    try:
        return url.copy_with(query=query)
    except httpx.InvalidURL as exc:
        raise InvalidQueryParams(str(exc)) from exc


def serialize_body(body: Any) -> bytes:
    """Encode a request body as pretty-printed JSON.

    Raises ``InvalidRequestPayload`` instead of sending an empty body when the
    value cannot be represented as JSON.
    """

    try:
        return TypeAdapter(type(body)).dump_json(body, indent=JSON_INDENT)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestPayload(exc) from exc


def has_body(body: Any) -> bool:
    return body is not None and not isinstance(body, EmptyRequestBody)


def build_request(
    url: httpx.URL | str,
    method: HTTPMethod | str = HTTPMethod.GET,
    *,
    headers: Iterable[HeaderLike] | None = None,
    body: Any = None,
    query_items: QueryItems | None = None,
) -> httpx.Request:
    """Create an ``httpx.Request`` from structured parameters.

    ``Accept: application/json`` is always sent first, followed by any caller
    headers in order (duplicates included). Supplied query items replace the
    URL's existing query string. A body other than ``None`` or
    ``EmptyRequestBody`` is JSON encoded and tagged with ``Content-Type``.
    """

    request_method = str(getattr(method, "value", method)).upper()
    target: httpx.URL | str = url
    try:
        request_method = _resolve_method(method)
        target = _resolve_url(url)
        if query_items is not None:
            target = _apply_query_items(target, query_items)

        request_headers = [("Accept", ContentType.JSON.value)]
        request_headers.extend(_normalize_headers(headers))

        content: bytes | None = None
        if has_body(body):
            request_headers.append(("Content-Type", ContentType.JSON.value))
            content = serialize_body(body)

        request = httpx.Request(
            request_method, target, headers=request_headers, content=content
        )
    except APIError as error:
        log_api_error(error, request_method, target)
        raise

    logger.debug(
        "APIRequest %s %s headers=%s body=%s",
        request_method,
        target,
        request_headers,
        content.decode() if content is not None else None,
    )
    return request


def _has_status_metadata(response: Any) -> bool:
    if not isinstance(response, httpx.Response):
        return False
    status_code = response.status_code
    return isinstance(status_code, int) and 100 <= status_code <= 599


def classify_response(
    response: httpx.Response,
    expectation: ResponseExpectation,
    expected_status: HTTPStatus | int = HTTPStatus.OK,
) -> Any:
    """Map a received response onto the declared result or an ``APIError``."""

    if not _has_status_metadata(response):
        raise InvalidResponse()

    expected = resolve_expected_status(expected_status)
    if response.status_code != expected:
        raise UnexpectedStatusCode(response.status_code, response.reason_phrase or None)

    content = response.content
    if isinstance(expectation, ExpectEmpty):
        if content:
            raise UnexpectedData()
        return EmptyResult()

    if not content:
        raise NoData()
    try:
        return expectation.decode(content)
    except ValidationError as exc:
        raw_text = response.text
        logger.error("APIError.decodingError: invalid JSON response\n%s", raw_text)
        raise DecodingError(exc, raw_text=raw_text) from exc


async def send_request(
    client: httpx.AsyncClient | None,
    request: httpx.Request,
    expectation: ResponseExpectation,
    expected_status: HTTPStatus | int = HTTPStatus.OK,
) -> Any:
    """Send a built request and return the decoded result.

    The caller owns ``client``. When it is omitted a client is opened for this
    single request using the configured timeout and closed afterwards.
    """

    try:
        expected = resolve_expected_status(expected_status)
    except APIError as error:
        log_api_error(error, request.method, request.url)
        raise

    if client is None:
        settings = get_settings()
        async with httpx.AsyncClient(timeout=settings.timeout_seconds) as owned_client:
            return await send_request(owned_client, request, expectation, expected)

    try:
        response = await client.send(request)
    except httpx.RequestError as exc:
        error = TransportError(exc)
        log_api_error(error, request.method, request.url)
        raise error from exc

    try:
        return classify_response(response, expectation, expected)
    except APIError as error:
        log_api_error(error, request.method, request.url)
        raise


__all__ = [
    "JSON_INDENT",
    "build_request",
    "classify_response",
    "has_body",
    "log_api_error",
    "resolve_expected_status",
    "send_request",
    "serialize_body",
]
