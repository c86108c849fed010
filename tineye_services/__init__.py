"""Python client for the TinEye Services image matching APIs.

Covers MatchEngine, MobileEngine, WineEngine and the metadata-enabled APIs.
Every operation returns the parsed JSON envelope as an ApiResponse.
"""

from .config import ServiceConfig  # noqa: F401
from .exceptions import (  # noqa: F401
    ApiCallError,
    HttpRequestError,
    InvalidArgument,
    ServiceCallError,
    TinEyeServiceError,
)
from .image import Image  # noqa: F401
from .models import ApiResponse  # noqa: F401
from .services import (  # noqa: F401
    ApiProduct,
    MatchEngineRequest,
    MetadataRequest,
    MobileEngineRequest,
    ServiceRequest,
    WineEngineRequest,
    create_request,
)
