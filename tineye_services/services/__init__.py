"""Request clients for the TinEye Services API product lines."""

from .base import ApiProduct, ApiRequester, ServiceEndpoint, ServiceRequest  # noqa: F401
from .factory import client_class, create_request  # noqa: F401
from .matchengine import MatchEngineRequest, MobileEngineRequest, WineEngineRequest  # noqa: F401
from .metadata import MetadataRequest  # noqa: F401
