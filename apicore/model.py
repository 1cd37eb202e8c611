"""Canonical data model for requests and outcomes handled by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Generic, Iterable, TypeVar, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter

if TYPE_CHECKING:
    from apicore.errors import APIError

ResultT = TypeVar("ResultT")


class HTTPMethod(str, Enum):
    """HTTP method for an API request."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    PATCH = "PATCH"


class ContentType(str, Enum):
    JSON = "application/json"


@dataclass(frozen=True)
class HTTPHeader:
    key: str
    value: str

    def as_tuple(self) -> tuple[str, str]:
        return (self.key, self.value)


HeaderLike = Union[HTTPHeader, tuple[str, str]]
QueryItems = Iterable[tuple[str, Any]]


def coerce_status(status: HTTPStatus | int) -> HTTPStatus:
    """Normalize an expected status given as a plain ``int``."""

    return status if isinstance(status, HTTPStatus) else HTTPStatus(status)


class EmptyRequestBody(BaseModel):
    """Body type for endpoints that never send an HTTP body."""

    model_config = ConfigDict(frozen=True)


class EmptyResult(BaseModel):
    """Result type for endpoints that expect no reply body."""

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class ExpectJSON(Generic[ResultT]):
    """Declares that a response body is required and decoded as ``result_type``.

    ``result_type`` may be any type pydantic can validate: models, dataclasses,
    ``TypedDict`` definitions or parametrized generics such as ``list[Item]``.
    """

    result_type: Any

    @cached_property
    def adapter(self) -> TypeAdapter[Any]:
        return TypeAdapter(self.result_type)

    def decode(self, content: bytes) -> ResultT:
        return self.adapter.validate_json(content)


@dataclass(frozen=True)
class ExpectEmpty:
    """Declares that the response must not carry a body."""


ResponseExpectation = Union[ExpectJSON[Any], ExpectEmpty]


@dataclass(frozen=True)
class Outcome(Generic[ResultT]):
    """Single result of a request: either the decoded value or an ``APIError``."""

    value: ResultT | None = None
    error: APIError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> ResultT:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


__all__ = [
    "ContentType",
    "EmptyRequestBody",
    "EmptyResult",
    "ExpectEmpty",
    "ExpectJSON",
    "HTTPHeader",
    "HTTPMethod",
    "HTTPStatus",
    "HeaderLike",
    "Outcome",
    "QueryItems",
    "ResponseExpectation",
    "ResultT",
    "coerce_status",
]
