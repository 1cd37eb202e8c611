import asyncio
import logging
from http import HTTPStatus
from types import SimpleNamespace

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from apicore.common import build_request, classify_response, send_request
from apicore.errors import (
    APIErrorKind,
    DecodingError,
    InvalidRequest,
    InvalidResponse,
    NoData,
    TransportError,
    UnexpectedData,
    UnexpectedStatusCode,
)
from apicore.model import EmptyResult, ExpectEmpty, ExpectJSON

ITEMS_URL = "https://api.example.com/v1/items"


class Item(BaseModel):
    id: int
    name: str


def _send(handler, expectation, *, expected_status=HTTPStatus.OK, request=None):
    async def _main():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            return await send_request(
                client, request or build_request(ITEMS_URL), expectation, expected_status
            )

    return asyncio.run(_main())


def test_decodes_expected_json_body():
    result = _send(lambda request: httpx.Response(200, json={"id": 1, "name": "widget"}), ExpectJSON(Item))

    assert result == Item(id=1, name="widget")


def test_decodes_parametrized_generic_result():
    payload = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]

    result = _send(lambda request: httpx.Response(200, json=payload), ExpectJSON(list[Item]))

    assert [item.id for item in result] == [1, 2]


def test_sends_the_built_request_unchanged():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"id": 9, "name": "new"})

    request = build_request(
        ITEMS_URL, "POST", headers=[("X-Trace", "abc")], body={"name": "new"}
    )
    result = _send(handler, ExpectJSON(Item), expected_status=HTTPStatus.CREATED, request=request)

    assert result.id == 9
    assert seen[0].headers["Accept"] == "application/json"
    assert seen[0].headers["X-Trace"] == "abc"
    assert seen[0].content == request.content


def test_other_success_status_is_still_unexpected():
    with pytest.raises(UnexpectedStatusCode) as excinfo:
        _send(lambda request: httpx.Response(201, json={"id": 1, "name": "x"}), ExpectJSON(Item))

    error = excinfo.value
    assert error.status_code == 201
    assert error.reason == "Created"
    assert error.kind is APIErrorKind.unexpected_status_code
    assert str(error) == "APIError.unexpectedStatusCode(status_code: 201, reason: Created)"


def test_expected_status_accepts_plain_int():
    result = _send(lambda request: httpx.Response(202, json={"id": 1, "name": "x"}), ExpectJSON(Item), expected_status=202)

    assert result.name == "x"


def test_empty_expectation_succeeds_without_body():
    result = _send(lambda request: httpx.Response(204), ExpectEmpty(), expected_status=HTTPStatus.NO_CONTENT)

    assert result == EmptyResult()


def test_empty_expectation_rejects_unanticipated_body():
    with pytest.raises(UnexpectedData):
        _send(lambda request: httpx.Response(200, json={"id": 1, "name": "x"}), ExpectEmpty())


def test_missing_body_is_no_data():
    with pytest.raises(NoData):
        _send(lambda request: httpx.Response(200), ExpectJSON(Item))


def test_truncated_json_is_decoding_error_with_raw_text(caplog):
    caplog.set_level(logging.ERROR, logger="apicore.common")

    with pytest.raises(DecodingError) as excinfo:
        _send(lambda request: httpx.Response(200, content=b'{"id": 1, "na'), ExpectJSON(Item))

    error = excinfo.value
    assert isinstance(error.cause, ValidationError)
    assert error.raw_text == '{"id": 1, "na'
    assert "invalid JSON response" in caplog.text
    assert '{"id": 1, "na' in caplog.text


def test_wrong_shape_is_decoding_error():
    with pytest.raises(DecodingError):
        _send(lambda request: httpx.Response(200, json={"id": "not-a-number"}), ExpectJSON(Item))


def test_connection_failure_is_transport_error_without_decoding(monkeypatch):
    def fail_decode(self, content):
        raise AssertionError("decoding must not be attempted")

    monkeypatch.setattr(ExpectJSON, "decode", fail_decode)
    cause = httpx.ConnectError("connection refused")

    def handler(request):
        raise cause

    with pytest.raises(TransportError) as excinfo:
        _send(handler, ExpectJSON(Item))

    assert excinfo.value.cause is cause
    assert excinfo.value.__cause__ is cause
    assert excinfo.value.kind is APIErrorKind.transport_error


def test_timeout_is_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError) as excinfo:
        _send(handler, ExpectEmpty())

    assert isinstance(excinfo.value.cause, httpx.TimeoutException)


def test_response_without_status_metadata_is_invalid():
    class StubClient:
        async def send(self, request):
            return SimpleNamespace(content=b"{}")

    async def _main():
        return await send_request(StubClient(), build_request(ITEMS_URL), ExpectJSON(Item))

    with pytest.raises(InvalidResponse):
        asyncio.run(_main())


def test_classify_rejects_out_of_range_status():
    with pytest.raises(InvalidResponse):
        classify_response(httpx.Response(42), ExpectEmpty())


def test_every_error_is_logged_with_request_url(caplog):
    caplog.set_level(logging.ERROR, logger="apicore.common")

    with pytest.raises(UnexpectedStatusCode):
        _send(lambda request: httpx.Response(404, json={"detail": "missing"}), ExpectJSON(Item))

    assert (
        "GET https://api.example.com/v1/items: "
        "APIError.unexpectedStatusCode(status_code: 404, reason: Not Found)"
    ) in caplog.text


def test_without_client_a_short_lived_client_is_used(monkeypatch):
    monkeypatch.setenv("API_TIMEOUT_SECONDS", "5")
    created = []
    original_init = httpx.AsyncClient.__init__

    def init(self, *args, **kwargs):
        created.append(kwargs.get("timeout"))
        kwargs["transport"] = httpx.MockTransport(lambda request: httpx.Response(204))
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "__init__", init)

    result = asyncio.run(
        send_request(None, build_request(ITEMS_URL), ExpectEmpty(), HTTPStatus.NO_CONTENT)
    )

    assert result == EmptyResult()
    assert created == [5.0]


def test_unknown_expected_status_fails_before_sending(caplog):
    caplog.set_level(logging.ERROR, logger="apicore.common")
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(299, json={"id": 1, "name": "x"})

    with pytest.raises(InvalidRequest, match="299"):
        _send(handler, ExpectJSON(Item), expected_status=299)

    assert sent == []
    assert "GET https://api.example.com/v1/items: APIError.invalidRequest" in caplog.text


def test_expectation_builds_its_adapter_once():
    expectation = ExpectJSON(list[Item])

    first = expectation.decode(b'[{"id": 1, "name": "a"}]')
    adapter = expectation.adapter
    second = expectation.decode(b'[{"id": 2, "name": "b"}]')

    assert expectation.adapter is adapter
    assert [item.id for item in first + second] == [1, 2]
