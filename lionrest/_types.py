# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Small helpers for inspecting declared types."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from types import UnionType
from typing import Annotated, Any, Union, get_args, get_origin

__all__ = (
    "strip_annotated",
    "raw_type",
    "type_argument",
    "is_none_type",
    "unwrap_optional",
    "item_type",
    "value_type",
    "type_name",
)

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, Sequence, Iterable)
_MAPPING_ORIGINS = (dict, Mapping)


def strip_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *extras]`` into ``(T, extras)``."""
    if get_origin(tp) is Annotated:
        base, *extras = get_args(tp)
        return base, tuple(extras)
    return tp, ()


def raw_type(tp: Any) -> Any:
    """``list[int]`` -> ``list``; plain classes are returned unchanged."""
    return get_origin(tp) or tp


def type_argument(tp: Any, index: int = 0) -> Any:
    args = get_args(tp)
    if len(args) <= index:
        raise ValueError(
            f"{type_name(tp)} must be parameterized, e.g. {type_name(tp)}[Foo]"
        )
    return args[index]


def is_none_type(tp: Any) -> bool:
    return tp is None or tp is type(None)


def unwrap_optional(tp: Any) -> Any:
    """``X | None`` -> ``X``; anything else is returned unchanged."""
    args = get_args(tp)
    if get_origin(tp) in (Union, UnionType) and len(args) == 2 and type(None) in args:
        return args[0] if args[1] is type(None) else args[1]
    return tp


def item_type(tp: Any) -> Any:
    """Element type of a declared collection, or ``tp`` itself."""
    if get_origin(tp) in _SEQUENCE_ORIGINS and (args := get_args(tp)):
        return args[0]
    return tp


def value_type(tp: Any) -> Any:
    """Value type of a declared mapping, or ``Any``."""
    if get_origin(tp) in _MAPPING_ORIGINS and len(args := get_args(tp)) == 2:
        return args[1]
    return Any


def type_name(tp: Any) -> str:
    if isinstance(tp, type) and not get_args(tp):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")
