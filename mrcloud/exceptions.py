"""
Exception hierarchy for MrCloud Core.

All custom exceptions inherit from MrCloudError base class.
"""

from typing import Any, Optional


class MrCloudError(Exception):
    """Base exception for all MrCloud Core errors."""
    pass


# Transport Errors
class TransportError(MrCloudError):
    """
    Raised when a request cannot be exchanged with the remote service.

    Covers connection failures, resets, DNS errors and timeouts. Always
    transient: the caller may retry.
    """
    pass


# Authentication Errors
class AuthError(MrCloudError):
    """
    Raised when no valid access token can be obtained.

    Token refresh was rejected or exhausted; the operation cannot proceed
    until new credentials are supplied.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        error_description: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.error_description = error_description


# Response Errors
class DecodeError(MrCloudError):
    """Raised when a response body does not match the expected shape."""
    pass


class RemoteRejectedError(MrCloudError):
    """Raised when the service answers with a well-formed error response."""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(f"Remote rejected request with status {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


# Upload Errors
class UploadError(MrCloudError):
    """Base exception for upload stream errors."""
    pass


class UploadAbortedError(UploadError):
    """
    Raised when an upload session is aborted after exhausting chunk retries.

    Attributes:
        offset: Last byte offset acknowledged by the service. An upload can
            be resumed from here.
    """

    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.offset = offset


class UploadIncompleteError(UploadError):
    """Raised when an upload is closed before its declared size was written."""
    pass


class UploadSizeExceededError(UploadError):
    """Raised when a write would exceed the declared upload size."""
    pass


class UploadStateError(UploadError):
    """Raised when writing to an upload stream that is no longer open."""
    pass


# Configuration Errors
class ConfigurationError(MrCloudError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass
