# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import collections.abc
import logging
from typing import Any

import anyio
import anyio.to_thread

from .._types import raw_type, type_argument
from ..call import Call
from ..http.messages import Response
from .base import CallAdapter, CallAdapterFactory, unwrap_body

__all__ = ("AwaitableCallAdapterFactory",)

logger = logging.getLogger(__name__)


class _AwaitableCallAdapter(CallAdapter):
    __slots__ = ("response_type", "body_only")

    def __init__(self, response_type: Any, body_only: bool):
        self.response_type = response_type
        self.body_only = body_only

    def adapt(self, call: Call):
        return self._execute(call)

    async def _execute(self, call: Call):
        try:
            response = await anyio.to_thread.run_sync(
                call.execute, abandon_on_cancel=True
            )
        except anyio.get_cancelled_exc_class():
            logger.debug(f"Awaiting task canceled, canceling {call!r}")
            call.cancel()
            raise
        return unwrap_body(response) if self.body_only else response


class AwaitableCallAdapterFactory(CallAdapterFactory):
    """Handles ``Awaitable[T]``, ``Coroutine[Any, Any, T]`` and ``async def``.

    ``Call.execute`` runs in an anyio worker thread. Cancelling the awaiting
    task cancels the call.
    """

    def get(self, return_type, annotations, client):
        origin = raw_type(return_type)
        if origin is collections.abc.Awaitable:
            inner = type_argument(return_type)
        elif origin is collections.abc.Coroutine:
            inner = type_argument(return_type, 2)
        else:
            return None
        if raw_type(inner) is Response:
            return _AwaitableCallAdapter(type_argument(inner), body_only=False)
        return _AwaitableCallAdapter(inner, body_only=True)
