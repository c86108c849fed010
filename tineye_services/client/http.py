from __future__ import annotations

import logging
import time
from http.client import HTTPException
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import (
    BaseHandler,
    HTTPBasicAuthHandler,
    HTTPPasswordMgrWithPriorAuth,
    Request,
    build_opener,
)

from tineye_services.client.multipart import MultipartPayload
from tineye_services.config import DEFAULT_TIMEOUT_SEC
from tineye_services.exceptions import HttpRequestError

log = logging.getLogger("tineye_services.http")

OpenerFactory = Callable[..., Any]


class HttpClient:
    """Blocking HTTP client for the TinEye Services APIs.

    Each call builds its own opener, performs exactly one request/response
    exchange and closes both the response and the opener before returning,
    whatever the outcome.

    Security notes:
    - Basic auth credentials are scoped to host:port and only attached when
      host, port, username and password are all configured.
    - Never logs request bodies or credentials.

    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = -1,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        opener_factory: Optional[OpenerFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.timeout = float(timeout)
        self._opener_factory = opener_factory or build_opener
        self._log = logger or log

    @property
    def use_auth(self) -> bool:
        return (
            self.host is not None
            and self.port >= 0
            and self.username is not None
            and self.password is not None
        )

    def get(self, url: str) -> Optional[str]:
        """HTTP GET. Returns the body text on 200, otherwise None."""

        return self._send("GET", url)

    def post(self, url: str, payload: MultipartPayload) -> Optional[str]:
        """HTTP POST multipart/form-data. Returns the body text on 200, otherwise None."""

        body, content_type = payload.encode()
        headers = {"Content-Type": content_type, "Content-Length": str(len(body))}
        return self._send("POST", url, data=body, headers=headers)

    def _handlers(self) -> list[BaseHandler]:
        if not self.use_auth:
            return []
        mgr = HTTPPasswordMgrWithPriorAuth()
        mgr.add_password(
            None, f"{self.host}:{self.port}", self.username, self.password, is_authenticated=True
        )
        return [HTTPBasicAuthHandler(mgr)]

    def _send(
        self,
        method: str,
        url: str,
        *,
        data: Optional[bytes] = None,
        headers: Optional[dict] = None,
    ) -> Optional[str]:
        opener = self._opener_factory(*self._handlers())
        resp = None
        status: Optional[int] = None
        start = time.monotonic()
        try:
            req = Request(url=url, data=data, headers=headers or {}, method=method)
            try:
                resp = opener.open(req, timeout=self.timeout)
            except HTTPError as e:
                # Error statuses still carry a response that must be released.
                resp = e
            status = int(resp.status or 0)
            if status != 200:
                return None
            charset = resp.headers.get_content_charset() or "utf-8"
            return resp.read().decode(charset, errors="replace")
        except (URLError, HTTPException, OSError, ValueError, LookupError) as e:
            self._log.error(
                "http_request_failed",
                extra={"http_method": method, "url": url, "error": str(e)},
            )
            raise HttpRequestError(f"{method} {url} failed: {e}") from e
        finally:
            try:
                if resp is not None:
                    resp.close()
            finally:
                opener.close()
            self._log.debug(
                "http_request",
                extra={
                    "http_method": method,
                    "url": url,
                    "status_code": status,
                    "authenticated": self.use_auth,
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )
