# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from .http.messages import Response

__all__ = (
    "LionRestError",
    "ConfigurationError",
    "InvalidMethodDefinition",
    "MalformedHeader",
    "MissingPathPlaceholder",
    "UnresolvedPathPlaceholder",
    "DuplicatePathPlaceholder",
    "UnexpectedFormField",
    "UnexpectedPart",
    "MultipleBodyParams",
    "AmbiguousUrlParam",
    "NoConverterFound",
    "NoCallAdapterFound",
    "CallError",
    "TransportError",
    "ConversionError",
    "AlreadyExecutedError",
    "CanceledError",
    "ArgumentError",
    "HttpError",
)


class LionRestError(Exception):
    default_message: ClassVar[str] = "lionrest error"
    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message or self.default_message)
        if cause:
            self.__cause__ = cause  # preserves traceback
        self.message = message or self.default_message
        self.details = details or {}

    def to_dict(self, *, include_cause: bool = False) -> dict[str, Any]:
        data = {
            "error": self.__class__.__name__,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }
        if include_cause and (cause := self.get_cause()):
            data["cause"] = repr(cause)
        return data

    def get_cause(self) -> BaseException | None:
        """Get the cause of this error, if any."""
        return self.__cause__ if hasattr(self, "__cause__") else None


# --- compile time ----------------------------------------------------------


class ConfigurationError(LionRestError, ValueError):
    """A service method declaration cannot be compiled.

    Raised once per compile attempt and never retried. The message names the
    service method and, where one is at fault, the parameter.
    """

    default_message = "Invalid service method declaration"
    __slots__ = ()

    @classmethod
    def for_method(
        cls,
        method: str,
        message: str,
        *,
        parameter: tuple[int, str] | None = None,
        cause: BaseException | None = None,
    ):
        """Create an error naming ``Service.method`` and optionally a parameter.

        Args:
            method: Qualified method name, e.g. ``"GitHub.list_repos"``.
            message: What is wrong.
            parameter: ``(index, name)`` of the offending parameter.
            cause: Underlying exception, if any.
        """
        details: dict[str, Any] = {"method": method}
        if parameter is not None:
            index, name = parameter
            message = f"{message} (parameter #{index + 1}: {name})"
            details["parameter"] = name
            details["parameter_index"] = index
        return cls(
            f"{message}\n    for method {method}",
            details=details,
            cause=cause,
        )


class InvalidMethodDefinition(ConfigurationError):
    default_message = "Invalid method definition"
    __slots__ = ()


class MalformedHeader(ConfigurationError):
    default_message = "Static header must be of the form 'Name: Value'"
    __slots__ = ()


class MissingPathPlaceholder(ConfigurationError):
    default_message = "Path parameter has no matching placeholder"
    __slots__ = ()


class UnresolvedPathPlaceholder(ConfigurationError):
    default_message = "Path placeholder is not bound to a Path parameter"
    __slots__ = ()


class DuplicatePathPlaceholder(ConfigurationError):
    default_message = "Path placeholder appears more than once"
    __slots__ = ()


class UnexpectedFormField(ConfigurationError):
    default_message = "Form fields require a form-encoded method"
    __slots__ = ()


class UnexpectedPart(ConfigurationError):
    default_message = "Parts require a multipart method"
    __slots__ = ()


class MultipleBodyParams(ConfigurationError):
    default_message = "Multiple Body parameters"
    __slots__ = ()


class AmbiguousUrlParam(ConfigurationError):
    default_message = "Multiple Url parameters"
    __slots__ = ()


class NoConverterFound(ConfigurationError):
    default_message = "No converter found"
    __slots__ = ()


class NoCallAdapterFound(ConfigurationError):
    default_message = "No call adapter found"
    __slots__ = ()


# --- call time -------------------------------------------------------------


class CallError(LionRestError):
    """Base for failures reported through a Call's failure path."""

    default_message = "Call failed"
    __slots__ = ()


class TransportError(CallError):
    """Connectivity, timeout or protocol failure in the network layer."""

    default_message = "Transport failure"
    __slots__ = ()


class ConversionError(CallError):
    """A request or response body could not be converted."""

    default_message = "Body conversion failed"
    __slots__ = ()


class AlreadyExecutedError(CallError, RuntimeError):
    default_message = "Already executed"
    __slots__ = ()


class CanceledError(CallError):
    default_message = "Canceled"
    __slots__ = ()


class ArgumentError(CallError, ValueError):
    """An argument value cannot be bound into the request."""

    default_message = "Invalid argument value"
    __slots__ = ()


class HttpError(CallError):
    """Non-2xx response surfaced by a body-only return shape."""

    default_message = "HTTP error"
    __slots__ = ("response",)

    def __init__(self, response: Response, message: str | None = None):
        super().__init__(
            message or f"HTTP {response.code} {response.message}".rstrip(),
            details={"status_code": response.code, "url": response.raw.url},
        )
        self.response = response

    @property
    def code(self) -> int:
        return self.response.code
