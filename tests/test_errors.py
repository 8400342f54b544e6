import httpx
import pytest

from supabase_storage import (
    ApiException,
    SerializationException,
    StorageClient,
    StorageException,
    TransportException,
)
from supabase_storage._response import api_error, map_response


def test_error_kinds_share_a_base():
    for kind in (TransportException, ApiException, SerializationException):
        assert issubclass(kind, StorageException)


def test_envelope_maps_status_and_message():
    response = httpx.Response(
        403,
        json={"statusCode": "403", "error": "Unauthorized", "message": "new row violates row-level security policy"},
    )

    error = api_error(response)

    assert error.status == "403"
    assert error.status_code == 403
    assert error.error == "Unauthorized"
    assert error.error_code == "Unauthorized"
    assert error.message == "new row violates row-level security policy"
    assert str(error) == "Operation failed with status 403: new row violates row-level security policy"


def test_envelope_without_status_code_uses_http_status():
    error = api_error(httpx.Response(409, json={"message": "The resource already exists"}))

    assert error.status == "409"
    assert error.message == "The resource already exists"
    assert error.error is None


def test_non_json_error_body_is_kept_verbatim():
    with pytest.raises(ApiException) as excinfo:
        map_response(httpx.Response(502, text="<html>Bad Gateway</html>"), dict)

    assert excinfo.value.status == "502"
    assert excinfo.value.message == "<html>Bad Gateway</html>"


def test_json_error_body_without_message_is_kept_verbatim():
    body = b'{"detail": "rate limited", "retry": 3}'

    with pytest.raises(ApiException) as excinfo:
        map_response(httpx.Response(429, content=body), dict)

    assert excinfo.value.status == "429"
    assert excinfo.value.message == body.decode()


def test_empty_error_body():
    with pytest.raises(ApiException) as excinfo:
        map_response(httpx.Response(500), None)

    assert excinfo.value.status == "500"
    assert excinfo.value.message == ""


def test_success_with_undecodable_body_is_serialization_error():
    with pytest.raises(SerializationException) as excinfo:
        map_response(httpx.Response(200, text="not json"), dict)

    assert excinfo.value.status_code == 200
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_success_without_parser_returns_bytes():
    assert map_response(httpx.Response(200, content=b"\x00\x01"), None) == b"\x00\x01"


@pytest.mark.asyncio
async def test_unreachable_network_is_transport_error(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    async with make_client(handler) as client:
        with pytest.raises(TransportException, match="connection refused") as excinfo:
            await client.list_buckets()

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_transport_errors_are_not_retried(make_client):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("timed out")

    async with make_client(handler) as client:
        with pytest.raises(TransportException):
            await client.get_bucket("avatars")

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_real_unreachable_host_is_transport_error():
    async with StorageClient(url="http://127.0.0.1:9/storage/v1", api_key="key", timeout=2) as client:
        with pytest.raises(TransportException):
            await client.list_buckets()


def test_error_body_keeps_undecodable_bytes():
    body = b"\xff\xfe bad"

    error = api_error(httpx.Response(500, content=body))

    assert error.status == "500"
    assert error.body == body
    assert error.message.endswith(" bad")


def test_envelope_error_keeps_raw_body():
    body = b'{"statusCode": "404", "error": "not_found", "message": "Object not found"}'

    error = api_error(httpx.Response(404, content=body))

    assert error.message == "Object not found"
    assert error.body == body
