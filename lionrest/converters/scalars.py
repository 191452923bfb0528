# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any

from ..http.messages import RequestBody, ResponseBody
from .base import ConverterFactory

__all__ = ("ScalarsConverterFactory",)

TEXT_MEDIA_TYPE = "text/plain; charset=UTF-8"


def _parse_bool(text: str) -> bool:
    value = text.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValueError(f"not a boolean: {text!r}")


_PARSERS = {
    str: lambda text: text,
    int: lambda text: int(text.strip()),
    float: lambda text: float(text.strip()),
    bool: _parse_bool,
}


class ScalarsConverterFactory(ConverterFactory):
    """Plain-text bodies for ``str``, ``int``, ``float`` and ``bool``."""

    def response_body_converter(self, type_, annotations, client):
        parse = _PARSERS.get(type_) if isinstance(type_, type) else None
        if parse is None:
            return None

        def convert(body: ResponseBody) -> Any:
            return parse(body.text())

        return convert

    def request_body_converter(self, type_, annotations, client):
        if not (isinstance(type_, type) and type_ in _PARSERS):
            return None

        def convert(value: Any) -> RequestBody:
            if isinstance(value, bool):
                value = str(value).lower()
            return RequestBody.of(str(value), TEXT_MEDIA_TYPE)

        return convert
