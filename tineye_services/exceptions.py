from __future__ import annotations

from typing import Optional


class TinEyeServiceError(Exception):
    """
    Base exception for all TinEye Services client failures.
    """

    pass


class InvalidArgument(TinEyeServiceError, ValueError):
    """
    Raised when a required input is missing or malformed.

    Always raised before any network call is made.
    """

    pass


class HttpRequestError(TinEyeServiceError):
    """
    Raised when an HTTP request cannot be issued or its response cannot be read.

    The underlying transport exception is available as ``__cause__``.
    """

    pass


class ApiCallError(TinEyeServiceError):
    """
    Raised when calling an API method fails or its response is not a valid
    JSON envelope.
    """

    def __init__(self, message: str, *, api_method: Optional[str] = None):
        super().__init__(message)
        self.api_method = api_method


class ServiceCallError(TinEyeServiceError):
    """
    Raised when a domain operation fails while assembling or issuing its request.
    """

    def __init__(self, message: str, *, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
