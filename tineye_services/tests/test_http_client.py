import io
import socket
from email.message import Message
from urllib.error import HTTPError, URLError
from urllib.request import BaseHandler, HTTPBasicAuthHandler, build_opener
from urllib.response import addinfourl

import pytest
from conftest import FakeOpener, FakeResponse

from tineye_services.client.http import HttpClient
from tineye_services.client.multipart import MultipartPayload
from tineye_services.exceptions import HttpRequestError


class RecordingHandler(BaseHandler):
    """Answers every http request locally and keeps the request for inspection."""

    handler_order = 50

    def __init__(self, body: bytes = b'{"status": "ok"}'):
        self.body = body
        self.requests = []

    def http_open(self, req):
        self.requests.append(req)
        headers = Message()
        headers["Content-Type"] = "application/json"
        resp = addinfourl(io.BytesIO(self.body), headers, req.full_url, 200)
        resp.msg = "OK"
        return resp


def _recording_client(handler, **kwargs):
    return HttpClient(opener_factory=lambda *h: build_opener(*h, handler), **kwargs)


def test_get_returns_body_and_releases_resources():
    resp = FakeResponse(200, '{"status": "ok", "note": "café"}'.encode("latin-1"), charset="latin-1")
    opener = FakeOpener(response=resp)
    client = HttpClient(opener_factory=opener.factory)

    text = client.get("http://api.example.com/rest/ping/")

    assert text == '{"status": "ok", "note": "café"}'
    assert opener.requests[0].get_method() == "GET"
    assert resp.close_count == 1
    assert opener.close_count == 1


def test_non_200_returns_none_and_releases_resources_exactly_once():
    resp = FakeResponse(500, b'{"status": "fail"}')
    opener = FakeOpener(response=resp)
    client = HttpClient(opener_factory=opener.factory)

    assert client.get("http://api.example.com/rest/count/") is None
    assert client.post("http://api.example.com/rest/add/", MultipartPayload().add_text("a", "b")) is None
    assert resp.close_count == 2
    assert opener.close_count == 2


def test_http_error_status_returns_none_and_closes_error_body():
    body = io.BytesIO(b"server error")
    err = HTTPError("http://api.example.com/rest/count/", 503, "Unavailable", Message(), body)
    opener = FakeOpener(exc=err)
    client = HttpClient(opener_factory=opener.factory)

    assert client.get("http://api.example.com/rest/count/") is None
    assert body.closed
    assert opener.close_count == 1


@pytest.mark.parametrize(
    "exc",
    [
        URLError(ConnectionRefusedError(111, "Connection refused")),
        socket.timeout("timed out"),
        ConnectionResetError(104, "reset"),
    ],
)
def test_transport_failures_raise_http_request_error(exc):
    opener = FakeOpener(exc=exc)
    client = HttpClient(opener_factory=opener.factory)

    with pytest.raises(HttpRequestError) as ei:
        client.get("http://api.example.com/rest/ping/")

    assert ei.value.__cause__ is exc
    assert opener.close_count == 1


def test_post_sends_multipart_body_and_headers():
    opener = FakeOpener(response=FakeResponse(200, b"{}"))
    client = HttpClient(opener_factory=opener.factory, timeout=5)
    payload = MultipartPayload().add_text("min_score", 50)

    client.post("http://api.example.com/rest/search/", payload)

    req = opener.requests[0]
    assert req.get_method() == "POST"
    assert req.get_header("Content-type").startswith("multipart/form-data; boundary=")
    assert int(req.get_header("Content-length")) == len(req.data)
    assert b'name="min_score"\r\n\r\n50\r\n' in req.data


@pytest.mark.parametrize(
    "host,port,username,password",
    [
        ("api.example.com", 80, "user", None),
        ("api.example.com", 80, None, "secret"),
        (None, 80, "user", "secret"),
        ("api.example.com", -1, "user", "secret"),
    ],
)
def test_no_authorization_header_unless_all_auth_settings_present(host, port, username, password):
    handler = RecordingHandler()
    client = _recording_client(handler, host=host, port=port, username=username, password=password)

    assert client.use_auth is False
    assert client._handlers() == []
    client.get("http://api.example.com/rest/ping/")

    assert handler.requests[0].get_header("Authorization") is None


def test_basic_auth_attached_for_configured_host_and_port():
    handler = RecordingHandler()
    client = _recording_client(
        handler, host="api.example.com", port=80, username="user", password="secret"
    )

    assert client.use_auth is True
    assert isinstance(client._handlers()[0], HTTPBasicAuthHandler)
    client.get("http://api.example.com/rest/ping/")
    client.get("http://other.example.com/rest/ping/")

    # base64("user:secret")
    assert handler.requests[0].get_header("Authorization") == "Basic dXNlcjpzZWNyZXQ="
    assert handler.requests[1].get_header("Authorization") is None
