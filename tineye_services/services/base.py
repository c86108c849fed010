from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode, urlsplit

from pydantic import ValidationError

from tineye_services.client.http import HttpClient
from tineye_services.client.multipart import MultipartPayload
from tineye_services.config import DEFAULT_TIMEOUT_SEC, ServiceConfig
from tineye_services.exceptions import (
    ApiCallError,
    HttpRequestError,
    InvalidArgument,
    ServiceCallError,
    TinEyeServiceError,
)
from tineye_services.image import Image
from tineye_services.models import ApiResponse

log = logging.getLogger("tineye_services.services")

# The TinEye Services APIs are served on port 80 unless the URL names a port;
# https URLs without one use 443.
DEFAULT_PORT = 80
DEFAULT_TLS_PORT = 443

QueryParams = Union[str, Mapping[str, object]]


class ApiProduct(str, Enum):
    """API product lines a request client can be bound to."""

    MATCHENGINE = "matchengine"
    MOBILEENGINE = "mobileengine"
    WINEENGINE = "wineengine"
    METADATA = "metadata"


@dataclass(frozen=True, slots=True)
class ServiceEndpoint:
    """One API base URL plus optional basic auth credentials.

    Invariants
    - api_url is absolute and ends with "/"
    - host is non-empty

    Security notes:
    - password is kept out of repr.

    """

    api_url: str
    host: str
    port: int = DEFAULT_PORT
    username: Optional[str] = None
    password: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"ServiceEndpoint(api_url={self.api_url!r}, host={self.host!r}, port={self.port!r}, "
            f"username={self.username!r}, password={'***' if self.password else None})"
        )

    @classmethod
    def from_url(
        cls, api_url: str, username: Optional[str] = None, password: Optional[str] = None
    ) -> "ServiceEndpoint":
        """Normalize `api_url` and derive the host from it.

        Raises:
          InvalidArgument: if the URL is empty or not an absolute http(s) URL
        """

        if not api_url or not str(api_url).strip():
            raise InvalidArgument("api_url must be set")
        api_url = str(api_url).strip()
        if not api_url.endswith("/"):
            api_url = api_url + "/"

        try:
            parts = urlsplit(api_url)
            port = parts.port
        except ValueError as e:
            raise InvalidArgument(f"invalid api_url {api_url!r}: {e}") from e
        if parts.scheme not in ("http", "https") or not parts.hostname:
            raise InvalidArgument(f"api_url must be an absolute http(s) URL: {api_url!r}")

        return cls(
            api_url=api_url,
            host=parts.hostname,
            port=port if port is not None else _default_port(parts.scheme),
            username=username,
            password=password,
        )

    def url_for(self, method: str, query_params: Optional[QueryParams] = None) -> str:
        """Build `<api_url><method>/[?query]`."""

        if not method:
            raise InvalidArgument("cannot call API with an empty method")
        url = f"{self.api_url}{method}/"
        if query_params:
            if isinstance(query_params, str):
                url += "?" + query_params
            else:
                url += "?" + urlencode(list(query_params.items()))
        return url


def _default_port(scheme: str) -> int:
    return DEFAULT_TLS_PORT if scheme == "https" else DEFAULT_PORT


class ApiRequester:
    """GET/POST an API method and parse the JSON envelope it returns.

    Shared by every request client. Holds no per-call state.
    """

    def __init__(
        self,
        endpoint: ServiceEndpoint,
        *,
        http_client: Optional[HttpClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        logger: Optional[logging.Logger] = None,
    ):
        self.endpoint = endpoint
        self.log = logger or log
        self.http = http_client or HttpClient(
            endpoint.host,
            endpoint.port,
            endpoint.username,
            endpoint.password,
            timeout=timeout,
            logger=self.log,
        )

    def get(self, method: str, query_params: Optional[QueryParams] = None) -> ApiResponse:
        url = self.endpoint.url_for(method, query_params)
        try:
            body = self.http.get(url)
        except HttpRequestError as e:
            self.log.error("api_get_failed", extra={"api_method": method, "url": url, "error": str(e)})
            raise ApiCallError(f"GET '{method}' failed: {e}", api_method=method) from e
        return self._parse(method, body)

    def post(self, method: str, payload: MultipartPayload) -> ApiResponse:
        url = self.endpoint.url_for(method)
        try:
            body = self.http.post(url, payload)
        except HttpRequestError as e:
            self.log.error("api_post_failed", extra={"api_method": method, "url": url, "error": str(e)})
            raise ApiCallError(f"POST '{method}' failed: {e}", api_method=method) from e
        return self._parse(method, body)

    def _parse(self, method: str, body: Optional[str]) -> ApiResponse:
        if body is None:
            self.log.error("api_no_content", extra={"api_method": method})
            raise ApiCallError(f"'{method}' returned no content", api_method=method)
        try:
            return ApiResponse.model_validate(json.loads(body))
        except (ValueError, ValidationError) as e:
            self.log.error("api_bad_response", extra={"api_method": method, "error": str(e)})
            raise ApiCallError(
                f"'{method}' response is not a valid API envelope: {e}", api_method=method
            ) from e


@contextmanager
def service_call(operation: str, logger: logging.Logger) -> Iterator[None]:
    """Run one domain operation.

    Client errors propagate unchanged; anything else is wrapped in
    ServiceCallError naming the operation.
    """

    try:
        yield
    except TinEyeServiceError as e:
        logger.error("service_call_failed", extra={"operation": operation, "error": str(e)})
        raise
    except Exception as e:
        logger.error("service_call_failed", extra={"operation": operation, "error": str(e)})
        raise ServiceCallError(f"'{operation}' failed: {e}", operation=operation) from e


def require_data(image: Image, operation: str) -> bytes:
    if image is None or image.data is None:
        raise ServiceCallError(f"'{operation}' requires image data", operation=operation)
    return image.data


def add_indexed_text(payload: MultipartPayload, field: str, values: Sequence[object]) -> MultipartPayload:
    """Add `field[0]`, `field[1]`, ... in input order."""

    for i, value in enumerate(values):
        payload.add_text(f"{field}[{i}]", value)
    return payload


def add_image_part(payload: MultipartPayload, name: str, image: Image, operation: str) -> MultipartPayload:
    return payload.add_file(name, require_data(image, operation), filename=image.filename)


def add_search_options(
    payload: MultipartPayload,
    min_score: int,
    offset: int,
    limit: int,
    check_horizontal_flip: bool,
) -> MultipartPayload:
    payload.add_text("min_score", int(min_score))
    payload.add_text("offset", int(offset))
    payload.add_text("limit", int(limit))
    payload.add_text("check_horizontal_flip", bool(check_horizontal_flip))
    return payload


def compare_image_payload(
    image1: Image, image2: Image, min_score: int, check_horizontal_flip: bool, operation: str
) -> MultipartPayload:
    payload = MultipartPayload()
    add_image_part(payload, "image1", image1, operation)
    add_image_part(payload, "image2", image2, operation)
    payload.add_text("min_score", int(min_score))
    payload.add_text("check_horizontal_flip", bool(check_horizontal_flip))
    return payload


def compare_url_payload(url1: str, url2: str, min_score: int, check_horizontal_flip: bool) -> MultipartPayload:
    payload = MultipartPayload()
    payload.add_text("url1", url1)
    payload.add_text("url2", url2)
    payload.add_text("min_score", int(min_score))
    payload.add_text("check_horizontal_flip", bool(check_horizontal_flip))
    return payload


class ServiceRequest:
    """Client bound to one TinEye Services API.

    Provides the operations every API product shares (count, list, delete,
    ping) plus the GET/POST-to-JSON helpers the product clients build on.
    """

    product: Optional[ApiProduct] = None

    def __init__(
        self,
        api_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        http_client: Optional[HttpClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.endpoint = ServiceEndpoint.from_url(api_url, username, password)
        self.log = logger or log
        self._api = ApiRequester(
            self.endpoint, http_client=http_client, timeout=timeout, logger=self.log
        )

    @classmethod
    def from_config(
        cls, cfg: ServiceConfig, *, configure_logging: bool = False, **kwargs
    ) -> "ServiceRequest":
        """Build a client from a ServiceConfig.

        An explicit `timeout` overrides the config. The config's log level is
        applied to the package logger only with `configure_logging=True`.
        """

        if configure_logging:
            logging.getLogger("tineye_services").setLevel(cfg.log_level)
        kwargs.setdefault("timeout", cfg.timeout)
        return cls(cfg.api_url, cfg.username, cfg.password, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.endpoint.api_url!r})"

    @property
    def api_url(self) -> str:
        return self.endpoint.api_url

    @property
    def host(self) -> str:
        return self.endpoint.host

    def get_api_request(self, method: str, query_params: Optional[QueryParams] = None) -> ApiResponse:
        """GET `<api_url><method>/` and parse the JSON envelope.

        Raises:
          InvalidArgument: if method is empty
          ApiCallError: on transport failure, non-200 status or a bad body
        """

        return self._api.get(method, query_params)

    def post_api_request(self, method: str, payload: MultipartPayload) -> ApiResponse:
        """POST `payload` to `<api_url><method>/` and parse the JSON envelope."""

        return self._api.post(method, payload)

    def count(self) -> ApiResponse:
        """Number of images in the collection."""

        with service_call("count", self.log):
            return self.get_api_request("count")

    def list(self, offset: int = 0, limit: int = 20) -> ApiResponse:
        """Collection filepaths, paginated."""

        with service_call("list", self.log):
            return self.get_api_request("list", f"offset={int(offset)}&limit={int(limit)}")

    def delete(self, filepaths: Sequence[str]) -> ApiResponse:
        """Remove images from the collection by collection filepath."""

        with service_call("delete", self.log):
            payload = add_indexed_text(MultipartPayload(), "filepaths", list(filepaths))
            return self.post_api_request("delete", payload)

    def ping(self) -> ApiResponse:
        with service_call("ping", self.log):
            return self.get_api_request("ping")
