# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .._errors import ArgumentError, ConversionError
from ..declare.methods import BodyMode
from ..declare.params import ParamRole
from ..http.messages import Invocation, Request
from .builder import RequestBuilder

if TYPE_CHECKING:
    from ..adapters.base import CallAdapter
    from ..converters.base import ResponseConverter

__all__ = ("ParameterBinding", "RequestTemplate")

Apply = Callable[[RequestBuilder, Any], None]


@dataclass(slots=True, frozen=True)
class ParameterBinding:
    """How one argument is written into a request.

    ``apply`` is chosen at compile time from the parameter's role and is never
    re-derived per call.
    """

    index: int
    name: str
    role: ParamRole
    key: str | None
    apply: Apply

    def bind(self, builder: RequestBuilder, value: Any) -> None:
        try:
            self.apply(builder, value)
        except (ArgumentError, ConversionError) as e:
            raise type(e)(
                f"{e.message} (parameter #{self.index + 1}: {self.name})",
                details={**e.details, "parameter": self.name},
                cause=e.get_cause() or e,
            ) from e
        except Exception as e:
            raise ConversionError(
                f"Unable to convert {value!r} for {self.role.value} "
                f"(parameter #{self.index + 1}: {self.name}): {e}",
                details={"parameter": self.name},
                cause=e,
            ) from e


@dataclass(slots=True, frozen=True)
class RequestTemplate:
    """Compiled, immutable description of one service method.

    Safe to share between threads once published; every call builds its own
    :class:`RequestBuilder`.
    """

    service: type
    method_name: str
    http_method: str
    base_url: str
    relative_url: str | None
    path_names: frozenset[str]
    headers: tuple[tuple[str, str], ...]
    content_type: str | None
    has_body: bool
    body_mode: BodyMode
    uses_url_param: bool
    bindings: tuple[ParameterBinding, ...]
    signature: inspect.Signature
    return_type: Any
    response_type: Any
    response_converter: ResponseConverter
    call_adapter: CallAdapter

    @property
    def qualname(self) -> str:
        return f"{self.service.__name__}.{self.method_name}"

    def bind_arguments(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> tuple[Any, ...]:
        """Match a Python call against the method signature.

        Raises:
            TypeError: Arguments do not fit the signature, as for any function.
        """
        bound = self.signature.bind(*args, **kwargs)
        bound.apply_defaults()
        return tuple(bound.arguments[name] for name in self.signature.parameters)

    def build(self, arguments: tuple[Any, ...]) -> Request:
        """Fill the template with ``arguments`` (in declaration order)."""
        if len(arguments) != len(self.bindings):
            raise ArgumentError(
                f"Argument count ({len(arguments)}) doesn't match expected "
                f"count ({len(self.bindings)}) for {self.qualname}"
            )
        builder = RequestBuilder(
            self.http_method,
            self.base_url,
            self.relative_url,
            self.headers,
            self.has_body,
            self.body_mode,
        )
        for binding, value in zip(self.bindings, arguments):
            binding.bind(builder, value)
        builder.add_tag(
            Invocation, Invocation(self.service, self.method_name, arguments)
        )
        return builder.build()
