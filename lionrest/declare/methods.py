# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Method-level metadata: HTTP verb, path, static headers and body mode.

Decorators stack in any order; each one records into a mutable
:class:`MethodMeta` stored on the function. The compiler freezes it into a
``MethodDescriptor`` on first use.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .._errors import InvalidMethodDefinition

F = TypeVar("F", bound=Callable[..., Any])

META_ATTR = "__lionrest_meta__"

__all__ = (
    "BodyMode",
    "MethodMeta",
    "META_ATTR",
    "get_meta",
    "HTTP",
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "HEAD",
    "PATCH",
    "OPTIONS",
    "headers",
    "form_url_encoded",
    "multipart",
)


class BodyMode(str, Enum):
    NONE = "none"
    FORM = "form"
    MULTIPART = "multipart"


@dataclass(slots=True)
class MethodMeta:
    http_method: str | None = None
    path: str = ""
    has_body: bool = False
    headers: list[str] = field(default_factory=list)
    form_url_encoded: bool = False
    multipart: bool = False


def get_meta(func: Any) -> MethodMeta | None:
    """Metadata recorded on ``func``, or None for undecorated callables."""
    return getattr(func, META_ATTR, None)


def _ensure_meta(func: Any) -> MethodMeta:
    meta = get_meta(func)
    if meta is None:
        meta = MethodMeta()
        setattr(func, META_ATTR, meta)
    return meta


def HTTP(method: str, path: str = "", *, has_body: bool = False) -> Callable[[F], F]:
    """Declare an arbitrary verb, e.g. ``@HTTP("DELETE", "items", has_body=True)``."""

    def decorator(func: F) -> F:
        meta = _ensure_meta(func)
        if meta.http_method is not None:
            raise InvalidMethodDefinition.for_method(
                func.__qualname__,
                "Only one HTTP method is allowed. "
                f"Found: {meta.http_method} and {method.upper()}.",
            )
        meta.http_method = method.upper()
        meta.path = path
        meta.has_body = has_body
        return func

    return decorator


def GET(path: str = "") -> Callable[[F], F]:
    return HTTP("GET", path)


def POST(path: str = "") -> Callable[[F], F]:
    return HTTP("POST", path, has_body=True)


def PUT(path: str = "") -> Callable[[F], F]:
    return HTTP("PUT", path, has_body=True)


def PATCH(path: str = "") -> Callable[[F], F]:
    return HTTP("PATCH", path, has_body=True)


def DELETE(path: str = "") -> Callable[[F], F]:
    return HTTP("DELETE", path)


def HEAD(path: str = "") -> Callable[[F], F]:
    return HTTP("HEAD", path)


def OPTIONS(path: str = "") -> Callable[[F], F]:
    return HTTP("OPTIONS", path)


def headers(*lines: str) -> Callable[[F], F]:
    """Static ``"Name: Value"`` header lines; repeated names are all sent."""

    def decorator(func: F) -> F:
        meta = _ensure_meta(func)
        # decorators apply bottom-up; keep the order lines read top-down
        meta.headers[:0] = lines
        return func

    return decorator


def form_url_encoded(func: F) -> F:
    _ensure_meta(func).form_url_encoded = True
    return func


def multipart(func: F) -> F:
    _ensure_meta(func).multipart = True
    return func
