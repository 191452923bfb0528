# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Completion dispatchers used to deliver ``Call.enqueue`` callbacks."""

from __future__ import annotations

import asyncio
import concurrent.futures
from abc import ABC, abstractmethod
from collections.abc import Callable

__all__ = (
    "CallbackExecutor",
    "ImmediateExecutor",
    "LoopExecutor",
    "PoolExecutor",
)


class CallbackExecutor(ABC):
    @abstractmethod
    def execute(self, fn: Callable[[], None]) -> None:
        """Schedule ``fn``; where and when it runs is up to the executor."""


class ImmediateExecutor(CallbackExecutor):
    """Runs callbacks on the thread that completed the I/O."""

    def execute(self, fn: Callable[[], None]) -> None:
        fn()


class LoopExecutor(CallbackExecutor):
    """Delivers every callback on one asyncio event loop.

    Use it when result handling must stay on a single thread, such as the loop
    driving an application's UI or server.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def execute(self, fn: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(fn)


class PoolExecutor(CallbackExecutor):
    """Delivers callbacks through a :mod:`concurrent.futures` executor."""

    def __init__(self, executor: concurrent.futures.Executor):
        self.executor = executor

    def execute(self, fn: Callable[[], None]) -> None:
        self.executor.submit(fn)
