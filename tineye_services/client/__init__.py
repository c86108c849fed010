"""HTTP transport for the TinEye Services APIs.

Security notes:
- Treat server responses as untrusted input.
- Avoid printing or logging raw image bytes.
"""

from .http import HttpClient  # noqa: F401
from .multipart import FormPart, MultipartPayload, form_value  # noqa: F401
