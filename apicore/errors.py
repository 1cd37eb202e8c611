"""Error taxonomy for the request pipeline.

Every failure of a request surfaces as exactly one ``APIError`` subclass. The
``kind`` tag identifies the failure class independently of the Python type so
callers can switch on it when an error travels inside an ``Outcome``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class APIErrorKind(str, Enum):
    invalid_request = "invalidRequest"
    invalid_request_payload = "invalidRequestPayload"
    invalid_query_params = "invalidQueryParams"
    transport_error = "transportError"
    invalid_response = "invalidResponse"
    unexpected_status_code = "unexpectedStatusCode"
    unexpected_data = "unexpectedData"
    no_data = "noData"
    decoding_error = "decodingError"


class APIError(Exception):
    kind: APIErrorKind

    @property
    def description(self) -> str:
        return f"APIError.{self.kind.value}"

    def __str__(self) -> str:
        return self.description


@dataclass
class InvalidRequest(APIError):
    """The method, URL, headers or expected status could not form a request."""

    reason: str = ""
    cause: Exception | None = None
    kind = APIErrorKind.invalid_request

    @property
    def description(self) -> str:
        if not self.reason:
            return super().description
        return f"APIError.{self.kind.value}({self.reason})"


@dataclass
class InvalidRequestPayload(APIError):
    """The request body could not be serialized to JSON."""

    cause: Exception | None = None
    kind = APIErrorKind.invalid_request_payload


@dataclass
class InvalidQueryParams(APIError):
    reason: str = ""
    kind = APIErrorKind.invalid_query_params

    @property
    def description(self) -> str:
        if not self.reason:
            return super().description
        return f"APIError.{self.kind.value}({self.reason})"


@dataclass
class TransportError(APIError):
    """The transport failed before any response was obtained."""

    cause: Exception
    kind = APIErrorKind.transport_error

    @property
    def description(self) -> str:
        return f"APIError.{self.kind.value}({self.cause!r})"


@dataclass
class InvalidResponse(APIError):
    kind = APIErrorKind.invalid_response


@dataclass
class UnexpectedStatusCode(APIError):
    status_code: int
    reason: str | None = None
    kind = APIErrorKind.unexpected_status_code

    @property
    def description(self) -> str:
        return (
            f"APIError.{self.kind.value}(status_code: {self.status_code}, "
            f"reason: {self.reason or '--'})"
        )


@dataclass
class UnexpectedData(APIError):
    """A body was received for an endpoint declared to return nothing."""

    kind = APIErrorKind.unexpected_data


@dataclass
class NoData(APIError):
    kind = APIErrorKind.no_data


@dataclass
class DecodingError(APIError):
    """The body was present but could not be decoded as the declared type.

    ``raw_text`` keeps the undecodable response text, which is otherwise lost
    once the response is released.
    """

    cause: Exception
    raw_text: str = ""
    kind = APIErrorKind.decoding_error

    @property
    def description(self) -> str:
        return f"APIError.{self.kind.value}({self.cause})"


__all__ = [
    "APIError",
    "APIErrorKind",
    "DecodingError",
    "InvalidQueryParams",
    "InvalidRequest",
    "InvalidRequestPayload",
    "InvalidResponse",
    "NoData",
    "TransportError",
    "UnexpectedData",
    "UnexpectedStatusCode",
]
