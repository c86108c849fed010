from __future__ import annotations

import json
import socket
import threading
import time
from email.message import Message
from typing import Any, Dict, List, Optional, Tuple

import pytest
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import UploadFile
from starlette.requests import Request

from tineye_services.client.multipart import MultipartPayload


class FakeHttpClient:
    """Stand-in for HttpClient that records calls and returns canned bodies."""

    def __init__(self, body: Optional[str] = None):
        self.body = body if body is not None else json.dumps(
            {"status": "ok", "method": "test", "result": [], "error": []}
        )
        self.calls: List[Tuple[str, str, Optional[MultipartPayload]]] = []

    def get(self, url: str) -> Optional[str]:
        self.calls.append(("GET", url, None))
        return self.body

    def post(self, url: str, payload: MultipartPayload) -> Optional[str]:
        self.calls.append(("POST", url, payload))
        return self.body


class FakeResponse:
    def __init__(self, status: int = 200, body: bytes = b"", charset: str = "utf-8"):
        self.status = status
        self._body = body
        self.headers = Message()
        self.headers["Content-Type"] = f"application/json; charset={charset}"
        self.close_count = 0

    def read(self) -> bytes:
        return self._body

    def close(self) -> None:
        self.close_count += 1


class FakeOpener:
    """Mock transport: returns one response or raises one exception."""

    def __init__(self, response: Any = None, exc: Optional[BaseException] = None):
        self.response = response
        self.exc = exc
        self.requests: List[Any] = []
        self.handlers: Tuple[Any, ...] = ()
        self.close_count = 0

    def factory(self, *handlers):
        self.handlers = handlers
        return self

    def open(self, req, timeout=None):
        self.requests.append(req)
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        self.close_count += 1


@pytest.fixture
def fake_http() -> FakeHttpClient:
    return FakeHttpClient()


def _create_echo_app() -> FastAPI:
    """API double that echoes back what it received inside a standard envelope."""

    app = FastAPI(title="TinEye Services echo")

    def _envelope(method: str, request: Request, fields: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "status": "ok",
            "method": method,
            "result": [
                {
                    "path": request.url.path,
                    "query": request.url.query,
                    "fields": fields,
                    "authorization": request.headers.get("authorization"),
                }
            ],
            "error": [],
        }

    @app.get("/rest/ping/")
    async def ping():
        return {"status": "ok", "method": "ping", "error": []}

    @app.get("/rest/broken/")
    async def broken():
        return JSONResponse({"status": "fail", "error": ["boom"]}, status_code=500)

    @app.get("/rest/garbage/")
    async def garbage():
        return PlainTextResponse("not json")

    @app.get("/rest/{method}/")
    async def echo_get(method: str, request: Request):
        return _envelope(method, request, [])

    @app.post("/rest/{method}/")
    async def echo_post(method: str, request: Request):
        form = await request.form()
        fields: List[Dict[str, Any]] = []
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                data = await value.read()
                fields.append({"name": name, "filename": value.filename, "size": len(data)})
            else:
                fields.append({"name": name, "value": value})
        return _envelope(method, request, fields)

    return app


@pytest.fixture(scope="session")
def echo_server():
    """Run the echo API under uvicorn on a free local port.

    Yields the API base URL (without trailing slash).
    """

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

    config = uvicorn.Config(_create_echo_app(), log_level="warning", lifespan="off")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, kwargs={"sockets": [sock]}, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline:
            raise RuntimeError("echo server did not start")
        time.sleep(0.02)

    yield f"http://127.0.0.1:{port}/rest"

    server.should_exit = True
    thread.join(timeout=5)
    sock.close()
