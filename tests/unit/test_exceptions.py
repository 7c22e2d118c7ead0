"""
Unit tests for exception hierarchy.
"""

import pytest
from mrcloud.exceptions import (
    AuthError,
    ConfigurationError,
    DecodeError,
    InvalidConfigurationError,
    MrCloudError,
    RemoteRejectedError,
    TransportError,
    UploadAbortedError,
    UploadError,
    UploadIncompleteError,
    UploadSizeExceededError,
    UploadStateError,
)


class TestExceptionHierarchy:
    """Test that exception hierarchy is correctly defined."""

    def test_base_exception(self):
        """Test that MrCloudError is the base exception."""
        error = MrCloudError("test error")
        assert isinstance(error, Exception)
        assert str(error) == "test error"

    def test_request_errors_inherit_from_base(self):
        """Test that transport, auth, decode and rejection errors inherit from MrCloudError."""
        for cls in (TransportError, AuthError, DecodeError, RemoteRejectedError):
            assert issubclass(cls, MrCloudError)

    def test_upload_errors_inherit_from_upload_error(self):
        """Test that upload errors share a common base."""
        assert issubclass(UploadError, MrCloudError)
        for cls in (UploadAbortedError, UploadIncompleteError, UploadSizeExceededError, UploadStateError):
            assert issubclass(cls, UploadError)

    def test_configuration_errors_inherit_from_base(self):
        """Test that configuration errors inherit from MrCloudError."""
        assert issubclass(ConfigurationError, MrCloudError)
        assert issubclass(InvalidConfigurationError, ConfigurationError)


class TestExceptionAttributes:
    """Test the data carried by exceptions."""

    def test_auth_error_carries_service_codes(self):
        error = AuthError("refresh rejected", error_code=6, error_description="token expired")
        assert error.error_code == 6
        assert error.error_description == "token expired"
        assert "refresh rejected" in str(error)

    def test_auth_error_codes_default_to_none(self):
        error = AuthError("no token")
        assert error.error_code is None
        assert error.error_description is None

    def test_remote_rejected_error(self):
        payload = {"status": 400, "body": {"home": {"error": "exists"}}}
        error = RemoteRejectedError(400, "home: exists", payload)
        assert error.status_code == 400
        assert error.message == "home: exists"
        assert error.payload is payload
        assert "400" in str(error)

    def test_upload_aborted_error_offset(self):
        error = UploadAbortedError("gave up", offset=8)
        assert error.offset == 8

    def test_catch_by_base(self):
        with pytest.raises(MrCloudError):
            raise UploadSizeExceededError("too much")
