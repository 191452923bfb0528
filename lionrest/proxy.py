# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Dispatch object standing in for a declared service."""

from __future__ import annotations

import functools
import inspect
import threading
import types
from typing import TYPE_CHECKING, Any

from .declare.methods import get_meta

if TYPE_CHECKING:
    from .client import RestClient

__all__ = ("ServiceProxy",)

_MISSING = object()


class ServiceProxy:
    """Answers attribute access for a service class.

    - HTTP-decorated methods become callables that compile the method on
      first use and return the adapted call.
    - Other functions defined on the service run as helpers with the proxy
      as ``self``, so they can call the HTTP methods.
    - Equality, hashing and ``repr`` are answered by the proxy itself.
    """

    __slots__ = ("_client", "_service", "_bound", "_lock")

    def __init__(self, client: RestClient, service: type):
        self._client = client
        self._service = service
        self._bound: dict[str, Any] = {}
        self._lock = threading.Lock()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        bound = self._bound.get(name, _MISSING)
        if bound is not _MISSING:
            return bound

        raw = inspect.getattr_static(self._service, name, _MISSING)
        if raw is _MISSING:
            raise AttributeError(
                f"{self._service.__name__!r} service has no attribute {name!r}"
            )
        if isinstance(raw, (staticmethod, classmethod)):
            return getattr(self._service, name)
        if not inspect.isfunction(raw):
            return raw

        meta = get_meta(raw)
        if meta is not None and meta.http_method is not None:
            bound = self._dispatcher(name, raw)
        else:
            bound = types.MethodType(raw, self)
        with self._lock:
            return self._bound.setdefault(name, bound)

    def _dispatcher(self, name: str, func):
        client, service = self._client, self._service

        @functools.wraps(func)
        def dispatch(*args: Any, **kwargs: Any) -> Any:
            template = client.template_for(service, name, func)
            return client.invoke(template, args, kwargs)

        return dispatch

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return f"<{self._service.__name__} proxy at {self._client.base_url}>"
