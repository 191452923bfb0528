# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from abc import ABC, abstractmethod

from ..http.messages import RawResponse, Request

__all__ = ("RawCall", "Transport")


class RawCall(ABC):
    """One network exchange as seen by the transport.

    ``execute`` blocks and either returns the buffered response or raises
    (``TransportError`` for network failures, ``CanceledError`` once
    canceled). ``cancel`` may be called from any thread.
    """

    @abstractmethod
    def execute(self) -> RawResponse: ...

    @abstractmethod
    def cancel(self) -> None: ...

    @property
    @abstractmethod
    def is_canceled(self) -> bool: ...


class Transport(ABC):
    @abstractmethod
    def new_call(self, request: Request) -> RawCall:
        """Prepare, but do not start, an exchange for ``request``."""

    def close(self) -> None:
        """Release pooled connections. Default: nothing to release."""
