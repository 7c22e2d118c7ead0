"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Unit tests for request descriptors and response decoding.
"""

from dataclasses import dataclass
from typing import Optional

import pytest

from mrcloud.core.request import RequestDescriptor, ResponseShape, decode_body, decode_structured
from mrcloud.exceptions import DecodeError


@dataclass
class Entry:
    name: str
    size: int = 0
    weblink: Optional[str] = None


class TestRequestDescriptor:
    """Test descriptor construction rules."""

    def test_method_uppercased(self):
        descriptor = RequestDescriptor(method="get", endpoint="/api/v2/folder")
        assert descriptor.method == "GET"

    def test_mappings_are_frozen(self):
        descriptor = RequestDescriptor(method="GET", endpoint="/x", params={"home": "/"})
        with pytest.raises(TypeError):
            descriptor.params["home"] = "/other"

    def test_descriptor_is_immutable(self):
        descriptor = RequestDescriptor(method="GET", endpoint="/x")
        with pytest.raises(AttributeError):
            descriptor.endpoint = "/y"

    def test_params_stringified(self):
        descriptor = RequestDescriptor(method="GET", endpoint="/x", params={"limit": 10})
        assert descriptor.params["limit"] == "10"

    def test_single_body_kind(self):
        with pytest.raises(ValueError):
            RequestDescriptor(method="POST", endpoint="/x", body=b"a", form={"k": "v"})

    def test_result_type_requires_json(self):
        with pytest.raises(ValueError):
            RequestDescriptor(method="GET", endpoint="/x", shape=ResponseShape.TEXT, result_type=Entry)

    def test_result_type_must_be_dataclass(self):
        with pytest.raises(ValueError):
            RequestDescriptor(method="GET", endpoint="/x", result_type=dict)

    @pytest.mark.asyncio
    async def test_open_body_replays_stream(self):
        """Test that each attempt gets a fresh body iterator."""

        async def body():
            yield b"AB"
            yield b"CD"

        descriptor = RequestDescriptor(method="PUT", endpoint="/x", body_stream=body)

        first = b"".join([part async for part in descriptor.open_body()])
        second = b"".join([part async for part in descriptor.open_body()])
        assert first == second == b"ABCD"

    def test_open_body_bytes(self):
        descriptor = RequestDescriptor(method="PUT", endpoint="/x", body=b"data")
        assert descriptor.open_body() == b"data"


class TestDecodeBody:
    """Test decoding by response shape."""

    def test_raw(self):
        assert decode_body(b"\xff\x00", ResponseShape.RAW) == b"\xff\x00"

    def test_text(self):
        assert decode_body("привет".encode("utf-8"), ResponseShape.TEXT) == "привет"

    def test_text_invalid_utf8(self):
        with pytest.raises(DecodeError):
            decode_body(b"\xff\xfe", ResponseShape.TEXT)

    def test_json(self):
        assert decode_body(b'{"status": 200, "body": []}', ResponseShape.JSON) == {"status": 200, "body": []}

    def test_json_empty_body(self):
        with pytest.raises(DecodeError, match="empty"):
            decode_body(b"  ", ResponseShape.JSON)

    def test_json_malformed(self):
        with pytest.raises(DecodeError):
            decode_body(b"<html>", ResponseShape.JSON)

    def test_json_structured(self):
        entry = decode_body(b'{"name": "a.txt", "size": 3, "extra": true}', ResponseShape.JSON, Entry)
        assert entry == Entry(name="a.txt", size=3)


class TestDecodeStructured:
    """Test field-by-field dataclass decoding."""

    def test_missing_required_field(self):
        with pytest.raises(DecodeError, match="name"):
            decode_structured({"size": 1}, Entry)

    def test_defaults_fill_missing_fields(self):
        assert decode_structured({"name": "x"}, Entry) == Entry(name="x", size=0, weblink=None)

    def test_null_uses_default(self):
        assert decode_structured({"name": "x", "size": None}, Entry).size == 0

    def test_int_from_digit_string(self):
        assert decode_structured({"name": "x", "size": "42"}, Entry).size == 42

    def test_wrong_scalar_type(self):
        with pytest.raises(DecodeError, match="size"):
            decode_structured({"name": "x", "size": "big"}, Entry)

    def test_bool_is_not_int(self):
        with pytest.raises(DecodeError):
            decode_structured({"name": "x", "size": True}, Entry)

    def test_optional_field(self):
        assert decode_structured({"name": "x", "weblink": "abc/def"}, Entry).weblink == "abc/def"

    def test_not_an_object(self):
        with pytest.raises(DecodeError):
            decode_structured(["name"], Entry)
