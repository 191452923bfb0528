# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Mutable per-call accumulator that parameter bindings write into."""

from __future__ import annotations

import re
import uuid
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote, quote_plus, urljoin

from .._errors import ArgumentError
from ..declare.methods import BodyMode
from ..http.messages import Headers, MultipartPart, Request, RequestBody

__all__ = (
    "PATH_PLACEHOLDER",
    "RequestBuilder",
    "encode_path_value",
    "encode_multipart",
)

PATH_PLACEHOLDER = re.compile(r"\{([A-Za-z0-9_]+)\}")

# RFC 3986 pchar minus "/" (unreserved and alphanumerics are always safe)
_PATH_SAFE = "!$&'()*+,;=:@"
_QUERY_SAFE = "!$'()*,;:@/?"
_TRAVERSAL = {".", "..", "%2e", "%2e%2e"}

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"


def encode_path_value(value: str, encoded: bool) -> str:
    """Percent-encode a path variable unless the caller already did."""
    result = value if encoded else quote(value, safe=_PATH_SAFE)
    if any(segment.lower() in _TRAVERSAL for segment in result.split("/")):
        raise ArgumentError(
            f"Path value {value!r} would traverse to a parent path"
        )
    return result


def encode_multipart(parts: Sequence[MultipartPart], boundary: str) -> bytes:
    out = bytearray()
    for part in parts:
        out += f"--{boundary}\r\n".encode()
        headers = list(part.headers)
        if part.body.content_type and "Content-Type" not in part.headers:
            headers.append(("Content-Type", part.body.content_type))
        for name, value in headers:
            out += f"{name}: {value}\r\n".encode()
        out += b"\r\n"
        out += part.body.content
        out += b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return bytes(out)


class RequestBuilder:
    __slots__ = (
        "method",
        "base_url",
        "relative_url",
        "has_body",
        "body_mode",
        "headers",
        "body",
        "tags",
        "_path",
        "_query",
        "_form",
        "_parts",
    )

    def __init__(
        self,
        method: str,
        base_url: str,
        relative_url: str | None,
        headers: Sequence[tuple[str, str]],
        has_body: bool,
        body_mode: BodyMode,
    ):
        self.method = method
        self.base_url = base_url
        self.relative_url = relative_url
        self.headers: list[tuple[str, str]] = list(headers)
        self.has_body = has_body
        self.body_mode = body_mode
        self.body: RequestBody | None = None
        self.tags: dict[Any, Any] = {}
        self._path: dict[str, str] = {}
        self._query: list[str] = []
        self._form: list[str] = []
        self._parts: list[MultipartPart] = []

    def set_path(self, name: str, value: str, encoded: bool) -> None:
        if self.relative_url is None:
            raise AssertionError("path substitution without a relative URL")
        self._path[name] = encode_path_value(value, encoded)

    def set_url(self, url: str) -> None:
        self.relative_url = url

    def add_query(self, name: str, value: str | None, encoded: bool) -> None:
        if not encoded:
            name = quote(name, safe=_QUERY_SAFE)
            value = None if value is None else quote(value, safe=_QUERY_SAFE)
        self._query.append(name if value is None else f"{name}={value}")

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    def add_form_field(self, name: str, value: str, encoded: bool) -> None:
        if not encoded:
            name, value = quote_plus(name), quote_plus(value)
        self._form.append(f"{name}={value}")

    def add_part(self, part: MultipartPart) -> None:
        self._parts.append(part)

    def set_body(self, body: RequestBody) -> None:
        self.body = body

    def add_tag(self, key: Any, value: Any) -> None:
        if value is None:
            self.tags.pop(key, None)
        else:
            self.tags[key] = value

    def _url(self) -> str:
        relative = self.relative_url or ""
        if self._path:
            # one pass, so substituted values are never scanned again
            relative = PATH_PLACEHOLDER.sub(
                lambda m: self._path.get(m.group(1), m.group(0)), relative
            )
        url = urljoin(self.base_url, relative)
        if self._query:
            url += ("&" if "?" in url else "?") + "&".join(self._query)
        return url

    def _body(self) -> RequestBody | None:
        if self.body_mode is BodyMode.FORM:
            return RequestBody.of("&".join(self._form), FORM_MEDIA_TYPE)
        if self.body_mode is BodyMode.MULTIPART:
            boundary = uuid.uuid4().hex
            return RequestBody(
                encode_multipart(self._parts, boundary),
                f"multipart/form-data; boundary={boundary}",
            )
        if self.body is None and self.has_body:
            return RequestBody(b"")
        return self.body

    def build(self) -> Request:
        body = self._body()
        headers = Headers(self.headers)
        # a declared Content-Type wins over the body's own media type
        declared = headers.get("Content-Type")
        if body is not None:
            if declared is None and body.content_type is not None:
                headers = Headers([*headers, ("Content-Type", body.content_type)])
            elif declared is not None and body.content_type != declared:
                body = RequestBody(body.content, declared)
        return Request(
            method=self.method,
            url=self._url(),
            headers=headers,
            body=body,
            tags=dict(self.tags),
        )
