# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any

from .._types import raw_type, type_argument
from ..call import Call
from .base import CallAdapter, CallAdapterFactory

__all__ = ("DefaultCallAdapterFactory",)


class _IdentityCallAdapter(CallAdapter):
    __slots__ = ("response_type",)

    def __init__(self, response_type: Any):
        self.response_type = response_type

    def adapt(self, call: Call) -> Call:
        return call


class DefaultCallAdapterFactory(CallAdapterFactory):
    """Handles ``Call[T]``: the call is returned unchanged."""

    def get(self, return_type, annotations, client):
        if raw_type(return_type) is not Call:
            return None
        return _IdentityCallAdapter(type_argument(return_type))
