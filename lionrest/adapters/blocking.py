# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import collections.abc
import concurrent.futures
from typing import Any

from .._types import raw_type, type_argument
from ..call import Call
from ..http.messages import Response
from .base import CallAdapter, CallAdapterFactory, unwrap_body

__all__ = ("BlockingCallAdapterFactory",)

_ASYNC_SHAPES = (
    Call,
    concurrent.futures.Future,
    collections.abc.Awaitable,
    collections.abc.Coroutine,
)


class _BlockingCallAdapter(CallAdapter):
    __slots__ = ("response_type", "body_only")

    def __init__(self, response_type: Any, body_only: bool):
        self.response_type = response_type
        self.body_only = body_only

    def adapt(self, call: Call):
        response = call.execute()
        return unwrap_body(response) if self.body_only else response


class BlockingCallAdapterFactory(CallAdapterFactory):
    """Executes the call on the invoking thread.

    Opt-in: register it in ``call_adapter_factories``. Handles
    ``Response[T]`` and any bare body type; declines the shapes the default
    factories own so ``Call[T]`` and friends keep working alongside it.
    """

    def get(self, return_type, annotations, client):
        origin = raw_type(return_type)
        if origin in _ASYNC_SHAPES:
            return None
        if origin is Response:
            return _BlockingCallAdapter(type_argument(return_type), body_only=False)
        return _BlockingCallAdapter(return_type, body_only=True)
