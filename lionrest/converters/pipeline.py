# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Ordered converter lookup.

Factories are asked in registration order, after :class:`BuiltInConverters`.
The first one that does not decline wins, and its converter is cached per
(direction, type, annotations).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Literal

from .._types import type_name
from .base import (
    ConverterFactory,
    RequestConverter,
    ResponseConverter,
    StringConverter,
)
from .builtin import BuiltInConverters, text_request_converter, to_str

if TYPE_CHECKING:
    from ..client import RestClient

__all__ = ("ConverterPipeline",)

logger = logging.getLogger(__name__)

Direction = Literal["response_body", "request_body", "string"]

_MISSING = object()


class ConverterPipeline:
    __slots__ = ("_factories", "_cache", "_lock")

    def __init__(self, factories: Sequence[ConverterFactory] = ()):
        self._factories: tuple[ConverterFactory, ...] = (
            BuiltInConverters(),
            *factories,
        )
        self._cache: dict[tuple, Any] = {}
        self._lock = threading.Lock()

    @property
    def factories(self) -> tuple[ConverterFactory, ...]:
        return self._factories

    def response_body_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...] = (),
        client: RestClient | None = None,
    ) -> ResponseConverter | None:
        return self._resolve("response_body", type_, annotations, client)

    def request_body_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...] = (),
        client: RestClient | None = None,
    ) -> RequestConverter | None:
        converter = self._resolve("request_body", type_, annotations, client)
        if converter is None and type_ is str:
            return text_request_converter
        return converter

    def string_converter(
        self,
        type_: Any,
        annotations: tuple[Any, ...] = (),
        client: RestClient | None = None,
    ) -> StringConverter:
        converter = self._resolve("string", type_, annotations, client)
        return to_str if converter is None else converter

    def _resolve(
        self,
        direction: Direction,
        type_: Any,
        annotations: tuple[Any, ...],
        client: RestClient | None,
    ):
        key = (direction, type_, annotations)
        try:
            cached = self._cache.get(key, _MISSING)
        except TypeError:  # unhashable type or annotation
            key, cached = None, _MISSING
        if cached is not _MISSING:
            return cached

        converter = None
        for factory in self._factories:
            hook = getattr(factory, f"{direction}_converter")
            converter = hook(type_, annotations, client)
            if converter is not None:
                logger.debug(
                    f"{direction} converter for {type_name(type_)} "
                    f"resolved by {factory!r}"
                )
                break

        if key is not None:
            with self._lock:
                converter = self._cache.setdefault(key, converter)
        return converter
