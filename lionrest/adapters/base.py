# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Call adapters turn a :class:`Call` into a method's declared return value."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .._errors import HttpError
from .._types import type_name

if TYPE_CHECKING:
    from ..call import Call
    from ..client import RestClient
    from ..http.messages import Response

__all__ = (
    "CallAdapter",
    "CallAdapterFactory",
    "CallAdapterPipeline",
    "unwrap_body",
)

logger = logging.getLogger(__name__)

R = TypeVar("R")
T = TypeVar("T")

_MISSING = object()


class CallAdapter(ABC, Generic[R, T]):
    """Adapts ``Call[R]`` into ``T``.

    ``response_type`` is the body type the response converter must produce.
    """

    response_type: Any

    @abstractmethod
    def adapt(self, call: Call[R]) -> T:
        ...


class CallAdapterFactory:
    """Creates a :class:`CallAdapter` for the return types it understands."""

    def get(
        self,
        return_type: Any,
        annotations: tuple[Any, ...],
        client: RestClient,
    ) -> CallAdapter | None:
        """Adapter for ``return_type``, or ``None`` to let the next factory try.

        Raise (e.g. ``ValueError``) when the shape is recognised but malformed,
        such as an unparameterized ``Call``.
        """
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def unwrap_body(response: Response[T]) -> T:
    """Body of a successful response; otherwise raise :class:`HttpError`."""
    if not response.is_successful:
        raise HttpError(response)
    return response.body


class CallAdapterPipeline:
    """Ordered adapter lookup: user factories first, then the defaults."""

    __slots__ = ("_factories", "_cache", "_lock")

    def __init__(self, factories: Sequence[CallAdapterFactory] = ()):
        from .awaitable import AwaitableCallAdapterFactory
        from .default import DefaultCallAdapterFactory
        from .future import FutureCallAdapterFactory

        self._factories: tuple[CallAdapterFactory, ...] = (
            *factories,
            DefaultCallAdapterFactory(),
            FutureCallAdapterFactory(),
            AwaitableCallAdapterFactory(),
        )
        self._cache: dict[tuple, CallAdapter | None] = {}
        self._lock = threading.Lock()

    @property
    def factories(self) -> tuple[CallAdapterFactory, ...]:
        return self._factories

    def get(
        self,
        return_type: Any,
        annotations: tuple[Any, ...] = (),
        client: RestClient | None = None,
    ) -> CallAdapter | None:
        key = (return_type, annotations)
        try:
            cached = self._cache.get(key, _MISSING)
        except TypeError:  # unhashable type or annotation
            key, cached = None, _MISSING
        if cached is not _MISSING:
            return cached

        adapter = None
        for factory in self._factories:
            adapter = factory.get(return_type, annotations, client)
            if adapter is not None:
                logger.debug(
                    f"Call adapter for {type_name(return_type)} resolved by {factory!r}"
                )
                break

        if key is not None:
            with self._lock:
                adapter = self._cache.setdefault(key, adapter)
        return adapter
