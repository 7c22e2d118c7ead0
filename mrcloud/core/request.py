"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Request descriptors and response decoding.

A RequestDescriptor says what to send and how to read the answer. Decoding is
a strategy chosen by the descriptor's ResponseShape instead of a request
class hierarchy: raw bytes, UTF-8 text, or JSON (optionally mapped field by
field onto a dataclass).
"""

from __future__ import annotations

import dataclasses
import json
import typing
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Type

from mrcloud.exceptions import DecodeError

BodyFactory = Callable[[], AsyncIterator[bytes]]


class ResponseShape(Enum):
    """Expected shape of a response body."""
    RAW = "raw"
    TEXT = "text"
    JSON = "json"


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, str]:
    return MappingProxyType({str(k): str(v) for k, v in (mapping or {}).items()})


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Immutable description of one request to the cloud service.

    Attributes:
        method: HTTP method
        endpoint: Path relative to the web API root, or an absolute URL
        params: Query parameters
        headers: Extra request headers
        body: Raw request body
        body_stream: Factory returning a fresh async iterator over the body.
            Called once per attempt so that a retried request replays the
            same bytes.
        form: Form fields, sent url-encoded
        shape: How to decode a successful response body
        result_type: Dataclass to build from a JSON body, field by field
        authenticated: Whether to attach the access token
        expect_continue: Whether to negotiate ``Expect: 100-continue``
        timeout: Per-request timeout override, in seconds
    """
    method: str
    endpoint: str
    params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    body_stream: Optional[BodyFactory] = None
    form: Optional[Mapping[str, str]] = None
    shape: ResponseShape = ResponseShape.JSON
    result_type: Optional[Type[Any]] = None
    authenticated: bool = True
    expect_continue: bool = False
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "params", _freeze(self.params))
        object.__setattr__(self, "headers", _freeze(self.headers))
        if self.form is not None:
            object.__setattr__(self, "form", _freeze(self.form))
        provided = [x for x in (self.body, self.body_stream, self.form) if x is not None]
        if len(provided) > 1:
            raise ValueError("Only one of body, body_stream and form may be set")
        if self.result_type is not None:
            if self.shape is not ResponseShape.JSON:
                raise ValueError("result_type requires the JSON response shape")
            if not dataclasses.is_dataclass(self.result_type):
                raise ValueError("result_type must be a dataclass")

    def open_body(self) -> Optional[Any]:
        """Return the body for one attempt: bytes, a fresh stream, or None."""
        if self.body_stream is not None:
            return self.body_stream()
        return self.body


def decode_body(raw: bytes, shape: ResponseShape, result_type: Optional[Type[Any]] = None) -> Any:
    """
    Decode a response body according to ``shape``.

    Raises:
        DecodeError: If the body cannot be decoded into the expected shape
    """
    if shape is ResponseShape.RAW:
        return raw

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Response body is not valid UTF-8: {e}") from e

    if shape is ResponseShape.TEXT:
        return text

    if not text.strip():
        raise DecodeError("Expected a JSON response body, got an empty body")
    try:
        data = json.loads(text)
    except ValueError as e:
        raise DecodeError(f"Response body is not valid JSON: {e}") from e

    if result_type is None:
        return data
    return decode_structured(data, result_type)


_SCALARS = (int, float, str, bool)


def decode_structured(data: Any, result_type: Type[Any]) -> Any:
    """
    Build ``result_type`` from a decoded JSON object, field by field.

    Unknown keys are ignored. Missing keys fall back to field defaults;
    a missing key without a default, or a scalar of the wrong type, is a
    decode error. ``int`` fields accept integral strings, which the service
    sometimes sends.
    """
    if not isinstance(data, dict):
        raise DecodeError(
            f"Expected a JSON object for {result_type.__name__}, got {type(data).__name__}"
        )

    hints = typing.get_type_hints(result_type)
    values: Dict[str, Any] = {}
    for f in dataclasses.fields(result_type):
        if f.name not in data or data[f.name] is None:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise DecodeError(f"{result_type.__name__}: missing required field '{f.name}'")
            continue
        values[f.name] = _coerce(data[f.name], hints.get(f.name, Any), result_type.__name__, f.name)
    return result_type(**values)


def _coerce(value: Any, hint: Any, type_name: str, field_name: str) -> Any:
    origin = typing.get_origin(hint)
    if origin is typing.Union:
        candidates = [a for a in typing.get_args(hint) if a is not type(None)]
        hint = candidates[0] if len(candidates) == 1 else Any

    if hint not in _SCALARS:
        return value

    if hint is bool:
        if isinstance(value, bool):
            return value
    elif hint is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value)
    elif hint is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif hint is str:
        if isinstance(value, str):
            return value

    raise DecodeError(
        f"{type_name}.{field_name}: expected {hint.__name__}, got {type(value).__name__}"
    )
