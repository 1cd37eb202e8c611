"""Base class that API endpoint definitions subclass.

An endpoint declares the type of body it sends, the type of result it expects
back and where it lives::

    class CreateItem(APIEndpoint[NewItem, Item]):
        base_url = "https://api.example.com/v1"
        path_component = "items"
        expectation = ExpectJSON(Item)

    item = await CreateItem().request(
        client, method=HTTPMethod.POST, body=new_item, expected_status=HTTPStatus.CREATED
    )

Endpoints that return nothing declare ``expectation = ExpectEmpty()`` and
resolve to ``EmptyResult()`` on success.
"""

from __future__ import annotations

import asyncio
from http import HTTPStatus
from typing import Any, Callable, ClassVar, Generic, Iterable, TypeVar

import httpx

from apicore.common import build_request, send_request
from apicore.config import BASE_URL_ENV, get_settings
from apicore.errors import APIError, InvalidRequest
from apicore.model import (
    HeaderLike,
    HTTPMethod,
    Outcome,
    QueryItems,
    ResponseExpectation,
)

RequestBodyT = TypeVar("RequestBodyT")
ResultT = TypeVar("ResultT")

Completion = Callable[[Outcome[Any]], None]


class APIEndpoint(Generic[RequestBodyT, ResultT]):
    base_url: ClassVar[str] = ""
    path_component: ClassVar[str] = ""
    expectation: ClassVar[ResponseExpectation]

    @classmethod
    def url(cls) -> httpx.URL:
        """Full URL of the endpoint: ``base_url`` (or ``API_BASE_URL``) plus the path."""

        base = cls.base_url or get_settings().base_url
        if not base:
            raise InvalidRequest(
                f"{cls.__name__} has no base_url; set it on the class or via {BASE_URL_ENV}"
            )
        target = base
        if cls.path_component:
            target = f"{base.rstrip('/')}/{cls.path_component.lstrip('/')}"
        try:
            return httpx.URL(target)
        except httpx.InvalidURL as exc:
            raise InvalidRequest(f"invalid URL {target!r}", exc) from exc

    def create_request(
        self,
        *,
        url: httpx.URL | str | None = None,
        method: HTTPMethod | str = HTTPMethod.GET,
        headers: Iterable[HeaderLike] | None = None,
        body: RequestBodyT | None = None,
        query_items: QueryItems | None = None,
    ) -> httpx.Request:
        return build_request(
            url if url is not None else self.url(),
            method,
            headers=headers,
            body=body,
            query_items=query_items,
        )

    async def request(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        url: httpx.URL | str | None = None,
        method: HTTPMethod | str = HTTPMethod.GET,
        headers: Iterable[HeaderLike] | None = None,
        body: RequestBodyT | None = None,
        query_items: QueryItems | None = None,
        expected_status: HTTPStatus | int = HTTPStatus.OK,
    ) -> ResultT:
        """Build, send and decode a request for this endpoint.

        Returns the decoded result or raises the ``APIError`` describing why
        the request failed.
        """

        prepared = self.create_request(
            url=url, method=method, headers=headers, body=body, query_items=query_items
        )
        return await self.request_prepared(client, prepared, expected_status=expected_status)

    async def request_prepared(
        self,
        client: httpx.AsyncClient | None,
        request: httpx.Request,
        *,
        expected_status: HTTPStatus | int = HTTPStatus.OK,
    ) -> ResultT:
        return await send_request(client, request, self.expectation, expected_status)

    async def request_outcome(
        self, client: httpx.AsyncClient | None = None, **kwargs: Any
    ) -> Outcome[ResultT]:
        try:
            value = await self.request(client, **kwargs)
        except APIError as error:
            return Outcome(error=error)
        return Outcome(value=value)

    def submit(
        self,
        completion: Completion,
        client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ) -> asyncio.Task[Outcome[ResultT]]:
        """Schedule the request on the running loop and report through ``completion``.

        ``completion`` receives the ``Outcome`` exactly once. It is not called
        if the task is cancelled.
        """

        async def _run() -> Outcome[ResultT]:
            outcome = await self.request_outcome(client, **kwargs)
            completion(outcome)
            return outcome

        return asyncio.create_task(_run())


__all__ = ["APIEndpoint", "Completion"]
