# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Wire-level values exchanged between the call engine and a transport."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

__all__ = (
    "Headers",
    "RequestBody",
    "ResponseBody",
    "MultipartPart",
    "Invocation",
    "Request",
    "RawResponse",
    "Response",
)


class Headers(tuple):
    """Ordered header multiset; the same name may appear several times."""

    def __new__(cls, items: Iterable[tuple[str, str]] = ()):
        return super().__new__(cls, ((str(k), str(v)) for k, v in items))

    def get(self, name: str, default: str | None = None) -> str | None:
        name = name.lower()
        for k, v in self:
            if k.lower() == name:
                return v
        return default

    def get_all(self, name: str) -> list[str]:
        name = name.lower()
        return [v for k, v in self if k.lower() == name]

    def __contains__(self, name: object) -> bool:
        if isinstance(name, str):
            return self.get(name) is not None
        return super().__contains__(name)

    def names(self) -> list[str]:
        return [k for k, _ in self]


@dataclass(slots=True, frozen=True)
class RequestBody:
    content: bytes
    content_type: str | None = None

    @classmethod
    def of(cls, content: str | bytes, content_type: str | None = None):
        if isinstance(content, str):
            content = content.encode("utf-8")
        return cls(content=content, content_type=content_type)

    def __len__(self) -> int:
        return len(self.content)


@dataclass(slots=True, frozen=True)
class ResponseBody:
    content: bytes
    content_type: str | None = None

    @property
    def charset(self) -> str:
        if self.content_type:
            for piece in self.content_type.split(";")[1:]:
                key, _, value = piece.strip().partition("=")
                if key.lower() == "charset" and value:
                    return value.strip('"')
        return "utf-8"

    def text(self) -> str:
        return self.content.decode(self.charset)

    def json(self) -> Any:
        return json.loads(self.content)

    def __len__(self) -> int:
        return len(self.content)


@dataclass(slots=True, frozen=True)
class MultipartPart:
    """One pre-built part of a multipart body.

    Passed as the value of an unnamed ``Part()`` parameter, or produced
    internally for named parts.
    """

    body: RequestBody
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def form_data(
        cls,
        name: str,
        value: str | bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> MultipartPart:
        disposition = f'form-data; name="{_quote_disposition(name)}"'
        if filename is not None:
            disposition += f'; filename="{_quote_disposition(filename)}"'
        return cls(
            body=RequestBody.of(value, content_type),
            headers=Headers([("Content-Disposition", disposition)]),
        )


def _quote_disposition(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "%0A")


@dataclass(slots=True, frozen=True)
class Invocation:
    """Tag describing which service method produced a request."""

    service: type
    method: str
    arguments: tuple[Any, ...]

    def __str__(self) -> str:
        return f"{self.service.__name__}.{self.method} {list(self.arguments)}"


@dataclass(slots=True, frozen=True)
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    body: RequestBody | None = None
    tags: Mapping[Any, Any] = field(default_factory=dict)

    def tag(self, key: Any, default: Any = None) -> Any:
        return self.tags.get(key, default)

    def __str__(self) -> str:
        return f"Request{{method={self.method}, url={self.url}}}"


@dataclass(slots=True, frozen=True)
class RawResponse:
    """What a transport hands back: status line, headers and buffered body."""

    status: int
    reason: str = ""
    headers: Headers = field(default_factory=Headers)
    body: ResponseBody | None = None
    url: str = ""
    request: Request | None = None

    @property
    def is_successful(self) -> bool:
        return 200 <= self.status < 300


class Response(Generic[T]):
    """A completed exchange with its converted body.

    ``body`` holds the converted value for 2xx responses; any other status
    leaves it ``None`` and keeps the undecoded payload in ``error_body``.
    """

    __slots__ = ("raw", "body", "error_body")

    def __init__(
        self,
        raw: RawResponse,
        body: T | None = None,
        error_body: ResponseBody | None = None,
    ):
        self.raw = raw
        self.body = body
        self.error_body = error_body

    @classmethod
    def success(cls, body: T, raw: RawResponse) -> Response[T]:
        if not raw.is_successful:
            raise ValueError("raw response must be successful")
        return cls(raw, body=body)

    @classmethod
    def error(cls, error_body: ResponseBody | None, raw: RawResponse) -> Response[T]:
        if raw.is_successful:
            raise ValueError("raw response should not be successful")
        return cls(raw, error_body=error_body)

    @property
    def code(self) -> int:
        return self.raw.status

    @property
    def message(self) -> str:
        return self.raw.reason

    @property
    def headers(self) -> Headers:
        return self.raw.headers

    @property
    def is_successful(self) -> bool:
        return self.raw.is_successful

    def __repr__(self) -> str:
        return f"Response(code={self.code}, body={self.body!r})"
