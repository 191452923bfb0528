# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic.errors import PydanticSchemaGenerationError

from ..http.messages import RequestBody, ResponseBody
from .base import ConverterFactory

__all__ = ("PydanticConverterFactory",)

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json; charset=UTF-8"


@lru_cache(maxsize=512)
def _adapter(type_: Any) -> TypeAdapter:
    return TypeAdapter(type_)


class PydanticConverterFactory(ConverterFactory):
    """JSON bodies validated and serialized by pydantic.

    Claims every type pydantic can build a schema for, so register it after
    any more specific factory.

    Args:
        by_alias: Serialize model fields by alias.
        exclude_none: Drop ``None`` valued fields from request bodies.
        media_type: Content type sent with request bodies.
    """

    def __init__(
        self,
        *,
        by_alias: bool = True,
        exclude_none: bool = False,
        media_type: str = JSON_MEDIA_TYPE,
    ):
        self.by_alias = by_alias
        self.exclude_none = exclude_none
        self.media_type = media_type

    def _adapter_for(self, type_: Any) -> TypeAdapter | None:
        try:
            return _adapter(type_)
        except TypeError:
            # unhashable type: build without caching
            try:
                return TypeAdapter(type_)
            except PydanticSchemaGenerationError:
                return None
        except PydanticSchemaGenerationError as e:
            logger.debug(f"pydantic declined {type_!r}: {e}")
            return None

    def response_body_converter(self, type_, annotations, client):
        adapter = self._adapter_for(type_)
        if adapter is None:
            return None

        def convert(body: ResponseBody) -> Any:
            return adapter.validate_json(body.content)

        return convert

    def request_body_converter(self, type_, annotations, client):
        adapter = self._adapter_for(type_)
        if adapter is None:
            return None

        def convert(value: Any) -> RequestBody:
            content = adapter.dump_json(
                value, by_alias=self.by_alias, exclude_none=self.exclude_none
            )
            return RequestBody(content, self.media_type)

        return convert

    def __repr__(self) -> str:
        return (
            f"PydanticConverterFactory(by_alias={self.by_alias}, "
            f"exclude_none={self.exclude_none})"
        )
