# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

from ..http.messages import RequestBody, ResponseBody

if TYPE_CHECKING:
    from ..client import RestClient

__all__ = (
    "Converter",
    "RequestConverter",
    "ResponseConverter",
    "StringConverter",
    "ConverterFactory",
)

Converter: TypeAlias = Callable[[Any], Any]
RequestConverter: TypeAlias = Callable[[Any], RequestBody]
ResponseConverter: TypeAlias = Callable[[ResponseBody], Any]
StringConverter: TypeAlias = Callable[[Any], str]


class ConverterFactory:
    """Creates converters for the types it understands.

    Every hook returns ``None`` to decline, letting the next factory in the
    client's list have a try. Override only the directions you support.
    """

    def response_body_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...],
        client: RestClient,
    ) -> ResponseConverter | None:
        """Converter from a response body to ``type_``."""
        return None

    def request_body_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...],
        client: RestClient,
    ) -> RequestConverter | None:
        """Converter from ``type_`` to a request body, for Body and Part values."""
        return None

    def string_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...],
        client: RestClient,
    ) -> StringConverter | None:
        """Converter from ``type_`` to ``str`` for path, query, header and field values."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
