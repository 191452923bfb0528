# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum
from typing import Any

from .._types import is_none_type
from ..http.messages import RequestBody, ResponseBody
from .base import ConverterFactory

__all__ = ("BuiltInConverters", "to_str", "text_request_converter")

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=UTF-8"


def _passthrough(value: Any) -> Any:
    return value


def _discard(body: ResponseBody) -> None:
    return None


def _content(body: ResponseBody) -> bytes:
    return body.content


def _bytes_body(value: bytes | bytearray) -> RequestBody:
    return RequestBody(bytes(value), OCTET_STREAM)


def text_request_converter(value: Any) -> RequestBody:
    return RequestBody.of(str(value), TEXT_PLAIN)


def to_str(value: Any) -> str:
    """Fallback string conversion used when no factory claims a type."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class BuiltInConverters(ConverterFactory):
    """Raw types that never go through a codec. Always consulted first."""

    def response_body_converter(self, type_, annotations, client):
        if type_ is ResponseBody:
            return _passthrough
        if type_ is bytes:
            return _content
        if is_none_type(type_):
            return _discard
        return None

    def request_body_converter(self, type_, annotations, client):
        if type_ is RequestBody:
            return _passthrough
        if type_ in (bytes, bytearray):
            return _bytes_body
        return None
