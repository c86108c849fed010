from __future__ import annotations

from typing import Dict, Optional, Type, Union

from tineye_services.config import ServiceConfig
from tineye_services.exceptions import InvalidArgument
from tineye_services.services.base import ApiProduct, ServiceRequest
from tineye_services.services.matchengine import (
    MatchEngineRequest,
    MobileEngineRequest,
    WineEngineRequest,
)
from tineye_services.services.metadata import MetadataRequest

_CLIENTS: Dict[ApiProduct, Type[ServiceRequest]] = {
    ApiProduct.MATCHENGINE: MatchEngineRequest,
    ApiProduct.MOBILEENGINE: MobileEngineRequest,
    ApiProduct.WINEENGINE: WineEngineRequest,
    ApiProduct.METADATA: MetadataRequest,
}


def client_class(product: Union[ApiProduct, str]) -> Type[ServiceRequest]:
    """Return the request client type for an API product line."""

    try:
        return _CLIENTS[ApiProduct(product)]
    except ValueError as e:
        known = ", ".join(p.value for p in ApiProduct)
        raise InvalidArgument(f"unknown API product {product!r} (expected one of: {known})") from e


def create_request(
    product: Union[ApiProduct, str],
    api: Union[str, ServiceConfig],
    username: Optional[str] = None,
    password: Optional[str] = None,
    **kwargs,
) -> ServiceRequest:
    """Build the request client for `product`.

    `api` is either the API base URL or a ServiceConfig; with a config, the
    credentials and timeout come from it.
    """

    cls = client_class(product)
    if isinstance(api, ServiceConfig):
        return cls.from_config(api, **kwargs)
    return cls(api, username, password, **kwargs)
