# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any

from .._types import raw_type, type_argument
from ..call import Call, Callback
from ..http.messages import Response
from .base import CallAdapter, CallAdapterFactory, unwrap_body

__all__ = ("FutureCallAdapterFactory",)

logger = logging.getLogger(__name__)


class _FutureCallback(Callback):
    __slots__ = ("future", "body_only")

    def __init__(self, future: concurrent.futures.Future, body_only: bool):
        self.future = future
        self.body_only = body_only

    def on_response(self, call, response):
        if self.body_only:
            try:
                value = unwrap_body(response)
            except Exception as e:
                self._settle(self.future.set_exception, e)
                return
        else:
            value = response
        self._settle(self.future.set_result, value)

    def on_failure(self, call, error):
        self._settle(self.future.set_exception, error)

    def _settle(self, setter, value) -> None:
        try:
            setter(value)
        except concurrent.futures.InvalidStateError:
            # the caller canceled the future first
            logger.debug(f"Dropping result for already settled {self.future!r}")


class _FutureCallAdapter(CallAdapter):
    __slots__ = ("response_type", "body_only")

    def __init__(self, response_type: Any, body_only: bool):
        self.response_type = response_type
        self.body_only = body_only

    def adapt(self, call: Call) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()

        def on_done(f: concurrent.futures.Future) -> None:
            if f.cancelled():
                call.cancel()

        future.add_done_callback(on_done)
        call.enqueue(_FutureCallback(future, self.body_only))
        return future


class FutureCallAdapterFactory(CallAdapterFactory):
    """Handles ``concurrent.futures.Future[T]`` and ``Future[Response[T]]``.

    The call is enqueued immediately; canceling the future cancels the call.
    Body-only futures fail with :class:`HttpError` on non-2xx responses.
    """

    def get(self, return_type, annotations, client):
        if raw_type(return_type) is not concurrent.futures.Future:
            return None
        inner = type_argument(return_type)
        if raw_type(inner) is Response:
            return _FutureCallAdapter(type_argument(inner), body_only=False)
        return _FutureCallAdapter(inner, body_only=True)
