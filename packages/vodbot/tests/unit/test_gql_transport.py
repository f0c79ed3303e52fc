import pytest
import requests

from conftest import FakeResponse, FakeSession

from vodbot.errors import ExitCode, ResponseShapeError, TransportError
from vodbot.gql import DeviceId, GQLClient


def _client(post):
    session = FakeSession(post=post)
    return GQLClient("client-123", DeviceId("dev-abc"), session=session), session


def test_request_carries_identity_headers():
    client, session = _client(lambda **kw: FakeResponse(json_data={"data": {}}))
    client.send("query { x }")

    method, url, kw = session.calls[0]
    assert method == "POST"
    assert url == "https://gql.twitch.tv/gql"
    assert kw["json"] == {"query": "query { x }"}
    assert kw["headers"]["Client-ID"] == "client-123"
    assert kw["headers"]["X-Device-Id"] == "dev-abc"
    assert session.headers["User-Agent"] == "vodbot-tests/1.0"


def test_device_id_generate_is_random_hex():
    a, b = DeviceId.generate(), DeviceId.generate()
    assert a != b
    assert len(str(a)) == 32
    int(str(a), 16)


def test_connection_failure_is_transport_error():
    client, _ = _client(lambda **kw: requests.ConnectionError("boom"))
    with pytest.raises(TransportError) as exc:
        client.send("query { x }")
    assert exc.value.status is None
    assert exc.value.exit_code == ExitCode.CANNOT_CONNECT


def test_non_2xx_is_transport_error_with_status_and_body():
    client, _ = _client(lambda **kw: FakeResponse(500, text="upstream broke"))
    with pytest.raises(TransportError) as exc:
        client.send("query { x }")
    assert exc.value.status == 500
    assert exc.value.body == "upstream broke"
    assert exc.value.exit_code == ExitCode.REQUEST_ERROR


def test_non_json_body_is_shape_error():
    client, _ = _client(lambda **kw: FakeResponse(200, text="<html>"))
    with pytest.raises(ResponseShapeError):
        client.send("query { x }")


def test_application_errors_are_returned_untouched():
    body = {"errors": [{"message": "service timeout"}], "data": None}
    client, _ = _client(lambda **kw: FakeResponse(json_data=body))
    assert client.send("query { x }") == body
