# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Request-template compiler.

Front end: :func:`describe` reads the decorators, signature and type hints
of one service method into a frozen :class:`MethodDescriptor`.

Back end: :func:`compile_template` validates the descriptor, resolves the
call adapter and converters through the client, and emits a
:class:`RequestTemplate`. Every failure is a :class:`ConfigurationError`
naming the method (and parameter) at fault.
"""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, get_type_hints

from .._errors import (
    AmbiguousUrlParam,
    ArgumentError,
    ConfigurationError,
    DuplicatePathPlaceholder,
    InvalidMethodDefinition,
    MalformedHeader,
    MissingPathPlaceholder,
    MultipleBodyParams,
    NoCallAdapterFound,
    NoConverterFound,
    UnexpectedFormField,
    UnexpectedPart,
    UnresolvedPathPlaceholder,
)
from .._types import (
    is_none_type,
    item_type,
    raw_type,
    strip_annotated,
    type_name,
    unwrap_optional,
    value_type,
)
from ..declare.methods import BodyMode, get_meta
from ..declare.params import (
    Body,
    Field,
    FieldMap,
    Header,
    HeaderMap,
    ParamMarker,
    Part,
    PartMap,
    Path,
    Query,
    QueryMap,
    Tag,
    Url,
)
from ..http.messages import MultipartPart, RequestBody, Response
from .builder import PATH_PLACEHOLDER as _PLACEHOLDER
from .builder import RequestBuilder
from .template import ParameterBinding, RequestTemplate

if TYPE_CHECKING:
    from ..client import RestClient

__all__ = (
    "ParameterDescriptor",
    "MethodDescriptor",
    "parse_path_placeholders",
    "describe",
    "compile_template",
)

logger = logging.getLogger(__name__)

_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def parse_path_placeholders(path: str) -> list[str]:
    """Placeholder names of ``path`` in order of appearance (duplicates kept)."""
    return _PLACEHOLDER.findall(path)


# --- front end -------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ParameterDescriptor:
    index: int
    name: str
    marker: ParamMarker
    type_: Any
    annotations: tuple[Any, ...]

    @property
    def key(self) -> str | None:
        return self.marker.key_for(self.name)


@dataclass(slots=True, frozen=True)
class MethodDescriptor:
    service: type
    name: str
    http_method: str
    path: str
    has_body: bool
    headers: tuple[str, ...]
    body_mode: BodyMode
    return_type: Any
    parameters: tuple[ParameterDescriptor, ...]
    signature: inspect.Signature

    @property
    def qualname(self) -> str:
        return f"{self.service.__name__}.{self.name}"


def _marker_of(
    qualname: str, index: int, param: inspect.Parameter, extras: tuple[Any, ...]
) -> tuple[ParamMarker, tuple[Any, ...]]:
    markers = [m for m in extras if isinstance(m, ParamMarker)]
    others = tuple(m for m in extras if not isinstance(m, ParamMarker))
    if isinstance(param.default, ParamMarker):
        markers.append(param.default)
    if not markers:
        raise InvalidMethodDefinition.for_method(
            qualname,
            "No parameter role found (use Path, Query, Body, ...)",
            parameter=(index, param.name),
        )
    if len(markers) > 1:
        raise InvalidMethodDefinition.for_method(
            qualname,
            "Multiple parameter roles found "
            f"({', '.join(type(m).__name__ for m in markers)})",
            parameter=(index, param.name),
        )
    return markers[0], others


def describe(service: type, name: str, func: Callable[..., Any]) -> MethodDescriptor:
    """Freeze the declarative metadata of ``service.name`` into a descriptor."""
    qualname = f"{service.__name__}.{name}"
    meta = get_meta(func)
    if meta is None or meta.http_method is None:
        raise InvalidMethodDefinition.for_method(
            qualname, "HTTP method decorator is required (e.g., @GET, @POST, etc.)."
        )
    if meta.form_url_encoded and meta.multipart:
        raise InvalidMethodDefinition.for_method(
            qualname, "Only one encoding decorator is allowed."
        )
    body_mode = (
        BodyMode.FORM
        if meta.form_url_encoded
        else BodyMode.MULTIPART if meta.multipart else BodyMode.NONE
    )
    if body_mode is not BodyMode.NONE and not meta.has_body:
        raise InvalidMethodDefinition.for_method(
            qualname,
            f"{'FormUrlEncoded' if meta.form_url_encoded else 'Multipart'} can "
            "only be specified on HTTP methods with request body (e.g., @POST).",
        )

    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception as e:
        raise InvalidMethodDefinition.for_method(
            qualname, f"Unable to resolve type hints: {e}", cause=e
        ) from e

    if "return" not in hints:
        raise InvalidMethodDefinition.for_method(
            qualname, "Service methods must declare a return type."
        )
    return_type = hints["return"]
    if inspect.iscoroutinefunction(func):
        return_type = Awaitable[return_type]

    params = list(inspect.signature(func).parameters.values())
    if not params or params[0].kind not in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        raise InvalidMethodDefinition.for_method(
            qualname, "Service methods must take 'self' as first parameter."
        )

    descriptors = []
    call_params = []
    for index, param in enumerate(params[1:]):
        if param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            raise InvalidMethodDefinition.for_method(
                qualname,
                "Variadic parameters are not supported",
                parameter=(index, param.name),
            )
        type_, extras = strip_annotated(hints.get(param.name, Any))
        marker, others = _marker_of(qualname, index, param, extras)
        descriptors.append(
            ParameterDescriptor(index, param.name, marker, type_, others)
        )
        if isinstance(param.default, ParamMarker):
            param = param.replace(default=inspect.Parameter.empty)
        call_params.append(param)

    return MethodDescriptor(
        service=service,
        name=name,
        http_method=meta.http_method,
        path=meta.path,
        has_body=meta.has_body,
        headers=tuple(meta.headers),
        body_mode=body_mode,
        return_type=return_type,
        parameters=tuple(descriptors),
        signature=inspect.Signature(call_params),
    )


# --- back end --------------------------------------------------------------


def _parse_headers(
    desc: MethodDescriptor,
) -> tuple[tuple[tuple[str, str], ...], str | None]:
    headers: list[tuple[str, str]] = []
    content_type = None
    for line in desc.headers:
        name, sep, value = line.partition(":")
        name, value = name.strip(), value.strip()
        if not sep or not _HEADER_NAME.match(name):
            raise MalformedHeader.for_method(
                desc.qualname,
                f"@headers value must be in the form 'Name: Value'. Found: {line!r}",
            )
        if content_type is None and name.lower() == "content-type":
            content_type = value
        headers.append((name, value))
    return tuple(headers), content_type


def _iter_values(value: Any):
    if isinstance(value, (list, tuple, set, frozenset)):
        yield from value
    else:
        yield value


def _require_mapping(kind: str, value: Any) -> Mapping:
    if value is None:
        raise ArgumentError(f"{kind} was None.")
    if not isinstance(value, Mapping):
        raise ArgumentError(f"{kind} must be a mapping, got {type(value).__name__}.")
    for key, item in value.items():
        if key is None:
            raise ArgumentError(f"{kind} contained None key.")
        if item is None:
            raise ArgumentError(f"{kind} contained None value for key {key!r}.")
    return value


class _Compiler:
    """Walks one descriptor; holds the state shared by the role handlers."""

    def __init__(self, desc: MethodDescriptor, client: RestClient):
        self.desc = desc
        self.client = client
        self.relative_url: str | None = desc.path
        self.placeholders: list[str] = []
        self.bound_paths: set[str] = set()
        self.got_body = False
        self.got_url = False
        self.got_query = False
        self.got_field = False
        self.got_part = False

    def error(self, cls: type[ConfigurationError], message: str, param=None, cause=None):
        return cls.for_method(
            self.desc.qualname,
            message,
            parameter=(param.index, param.name) if param is not None else None,
            cause=cause,
        )

    # path -------------------------------------------------------------

    def parse_path(self) -> None:
        path = self.desc.path
        path_part, _, query_part = path.partition("?")
        if query_part and _PLACEHOLDER.search(query_part):
            raise self.error(
                InvalidMethodDefinition,
                f"URL query string {query_part!r} must not contain placeholders. "
                "Use Query for dynamic query parameters.",
            )
        seen: set[str] = set()
        for name in parse_path_placeholders(path_part):
            if name in seen:
                raise self.error(
                    DuplicatePathPlaceholder,
                    f"Path placeholder {{{name}}} appears more than once in {path!r}.",
                )
            seen.add(name)
            self.placeholders.append(name)

    # converters -------------------------------------------------------

    def string_converter(self, param: ParameterDescriptor, type_: Any):
        return self.client.string_converter(type_, param.annotations)

    def request_converter(self, param: ParameterDescriptor, type_: Any):
        try:
            converter = self.client.request_body_converter(type_, param.annotations)
        except Exception as e:
            raise self.error(
                NoConverterFound,
                f"Unable to create request converter for {type_name(type_)}: {e}",
                param,
                cause=e,
            ) from e
        if converter is None:
            raise self.error(
                NoConverterFound,
                f"No request converter found for {type_name(type_)}. Tried: "
                + ", ".join(repr(f) for f in self.client.converter_factories),
                param,
            )
        return converter

    # roles ------------------------------------------------------------

    def bind(self, param: ParameterDescriptor) -> ParameterBinding:
        handler = getattr(self, f"_bind_{param.marker.role.name.lower()}")
        apply = handler(param, param.marker)
        return ParameterBinding(
            index=param.index,
            name=param.name,
            role=param.marker.role,
            key=param.key,
            apply=apply,
        )

    def _bind_url(self, param, marker: Url):
        if self.got_url:
            raise self.error(AmbiguousUrlParam, "Multiple Url parameters found.", param)
        if self.bound_paths:
            raise self.error(
                InvalidMethodDefinition, "Url parameter cannot be used with Path.", param
            )
        if self.got_query:
            raise self.error(
                InvalidMethodDefinition, "A Url parameter must not come after a Query.", param
            )
        if self.desc.path:
            raise self.error(
                InvalidMethodDefinition,
                f"Url cannot be used with @{self.desc.http_method} URL {self.desc.path!r}",
                param,
            )
        self.got_url = True
        self.relative_url = None

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                raise ArgumentError("Url parameter is None.")
            builder.set_url(str(value))

        return apply

    def _bind_path(self, param, marker: Path):
        name = param.key
        if self.got_url:
            raise self.error(
                InvalidMethodDefinition, "Path parameters may not be used with Url.", param
            )
        if self.got_query:
            raise self.error(
                InvalidMethodDefinition, "A Path parameter must not come after a Query.", param
            )
        if name not in self.placeholders:
            raise self.error(
                MissingPathPlaceholder,
                f"URL {self.desc.path!r} does not contain {{{name}}}.",
                param,
            )
        if name in self.bound_paths:
            raise self.error(
                InvalidMethodDefinition, f"Path {{{name}}} is bound twice.", param
            )
        self.bound_paths.add(name)
        to_str = self.string_converter(param, param.type_)

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                raise ArgumentError(f"Path parameter {name!r} value must not be None.")
            builder.set_path(name, to_str(value), marker.encoded)

        return apply

    def _bind_query(self, param, marker: Query):
        name = param.key
        self.got_query = True
        to_str = self.string_converter(param, item_type(param.type_))

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                return
            for item in _iter_values(value):
                if item is not None:
                    builder.add_query(name, to_str(item), marker.encoded)

        return apply

    def _bind_query_map(self, param, marker: QueryMap):
        self.got_query = True
        to_str = self.string_converter(param, item_type(value_type(param.type_)))

        def apply(builder: RequestBuilder, value: Any) -> None:
            for key, item in _require_mapping("Query map", value).items():
                for element in _iter_values(item):
                    builder.add_query(str(key), to_str(element), marker.encoded)

        return apply

    def _bind_header(self, param, marker: Header):
        name = param.key
        to_str = self.string_converter(param, item_type(param.type_))

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                return
            for item in _iter_values(value):
                if item is not None:
                    builder.add_header(name, to_str(item))

        return apply

    def _bind_header_map(self, param, marker: HeaderMap):
        to_str = self.string_converter(param, value_type(param.type_))

        def apply(builder: RequestBuilder, value: Any) -> None:
            for key, item in _require_mapping("Header map", value).items():
                builder.add_header(str(key), to_str(item))

        return apply

    def _bind_field(self, param, marker: Field):
        if self.desc.body_mode is not BodyMode.FORM:
            raise self.error(
                UnexpectedFormField,
                "Field parameters can only be used with form encoding.",
                param,
            )
        self.got_field = True
        name = param.key
        to_str = self.string_converter(param, item_type(param.type_))

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                return
            for item in _iter_values(value):
                if item is not None:
                    builder.add_form_field(name, to_str(item), marker.encoded)

        return apply

    def _bind_field_map(self, param, marker: FieldMap):
        if self.desc.body_mode is not BodyMode.FORM:
            raise self.error(
                UnexpectedFormField,
                "FieldMap parameters can only be used with form encoding.",
                param,
            )
        self.got_field = True
        to_str = self.string_converter(param, item_type(value_type(param.type_)))

        def apply(builder: RequestBuilder, value: Any) -> None:
            for key, item in _require_mapping("Field map", value).items():
                for element in _iter_values(item):
                    builder.add_form_field(str(key), to_str(element), marker.encoded)

        return apply

    def _part_headers(self, name: str, marker: Part | PartMap, filename: str | None):
        part = MultipartPart.form_data(name, b"", filename=filename)
        return (*part.headers, ("Content-Transfer-Encoding", marker.encoding))

    def _bind_part(self, param, marker: Part):
        if self.desc.body_mode is not BodyMode.MULTIPART:
            raise self.error(
                UnexpectedPart,
                "Part parameters can only be used with multipart encoding.",
                param,
            )
        self.got_part = True
        element = item_type(param.type_)

        if element is MultipartPart:
            if marker.name:
                raise self.error(
                    InvalidMethodDefinition,
                    "Part parameters using the MultipartPart type must not "
                    "include a part name in the marker.",
                    param,
                )

            def apply_raw(builder: RequestBuilder, value: Any) -> None:
                if value is None:
                    return
                for item in _iter_values(value):
                    if item is not None:
                        builder.add_part(item)

            return apply_raw

        headers = self._part_headers(param.key, marker, marker.filename)
        convert = self.request_converter(param, element)

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                return
            for item in _iter_values(value):
                if item is not None:
                    builder.add_part(MultipartPart(convert(item), headers))

        return apply

    def _bind_part_map(self, param, marker: PartMap):
        if self.desc.body_mode is not BodyMode.MULTIPART:
            raise self.error(
                UnexpectedPart,
                "PartMap parameters can only be used with multipart encoding.",
                param,
            )
        self.got_part = True
        element = value_type(param.type_)
        if element is MultipartPart:
            raise self.error(
                InvalidMethodDefinition,
                "PartMap values cannot be MultipartPart. Use Part with a "
                "list of MultipartPart instead.",
                param,
            )
        convert = self.request_converter(param, element)

        def apply(builder: RequestBuilder, value: Any) -> None:
            for key, item in _require_mapping("Part map", value).items():
                headers = self._part_headers(str(key), marker, None)
                builder.add_part(MultipartPart(convert(item), headers))

        return apply

    def _bind_body(self, param, marker: Body):
        if self.desc.body_mode is BodyMode.FORM:
            raise self.error(
                UnexpectedFormField,
                "Body parameters cannot be used with form encoding.",
                param,
            )
        if self.desc.body_mode is BodyMode.MULTIPART:
            raise self.error(
                UnexpectedPart,
                "Body parameters cannot be used with multipart encoding.",
                param,
            )
        if self.got_body:
            raise self.error(MultipleBodyParams, "Multiple Body parameters.", param)
        if not self.desc.has_body:
            raise self.error(
                InvalidMethodDefinition,
                f"Non-body HTTP method {self.desc.http_method} cannot contain a Body.",
                param,
            )
        self.got_body = True
        convert = self.request_converter(param, param.type_)

        def apply(builder: RequestBuilder, value: Any) -> None:
            if value is None:
                raise ArgumentError("Body parameter value must not be None.")
            body = convert(value)
            if not isinstance(body, RequestBody):
                raise TypeError(
                    f"request converter returned {type(body).__name__}, not RequestBody"
                )
            builder.set_body(body)

        return apply

    def _bind_tag(self, param, marker: Tag):
        key = raw_type(unwrap_optional(param.type_))

        def apply(builder: RequestBuilder, value: Any) -> None:
            builder.add_tag(key, value)

        return apply

    # method -----------------------------------------------------------

    def resolve_call_adapter(self):
        return_type = self.desc.return_type
        try:
            adapter = self.client.call_adapter(return_type)
        except Exception as e:
            raise self.error(
                NoCallAdapterFound,
                f"Unable to create call adapter for {type_name(return_type)}: {e}",
                cause=e,
            ) from e
        if adapter is None:
            raise self.error(
                NoCallAdapterFound,
                f"No call adapter found for {type_name(return_type)}. Tried: "
                + ", ".join(repr(f) for f in self.client.call_adapter_factories),
            )
        return adapter

    def resolve_response_converter(self, response_type: Any):
        if raw_type(response_type) is Response:
            raise self.error(
                InvalidMethodDefinition,
                f"{type_name(response_type)} is not a valid response body type. "
                "Did you mean ResponseBody?",
            )
        if self.desc.http_method == "HEAD" and not is_none_type(response_type):
            raise self.error(
                InvalidMethodDefinition, "HEAD method must use None as response type."
            )
        try:
            converter = self.client.response_body_converter(response_type)
        except Exception as e:
            raise self.error(
                NoConverterFound,
                f"Unable to create converter for {type_name(response_type)}: {e}",
                cause=e,
            ) from e
        if converter is None:
            raise self.error(
                NoConverterFound,
                f"No response converter found for {type_name(response_type)}. Tried: "
                + ", ".join(repr(f) for f in self.client.converter_factories),
            )
        return converter

    def compile(self) -> RequestTemplate:
        desc = self.desc
        headers, content_type = _parse_headers(desc)
        self.parse_path()

        bindings = tuple(self.bind(param) for param in desc.parameters)

        unresolved = [p for p in self.placeholders if p not in self.bound_paths]
        if unresolved and not self.got_url:
            raise self.error(
                UnresolvedPathPlaceholder,
                f"URL {desc.path!r} has placeholders without a Path parameter: "
                + ", ".join(f"{{{name}}}" for name in unresolved),
            )
        if not desc.path and not self.got_url:
            raise self.error(
                InvalidMethodDefinition,
                f"Missing either @{desc.http_method} URL or Url parameter.",
            )
        if desc.body_mode is BodyMode.FORM and not self.got_field:
            raise self.error(
                InvalidMethodDefinition,
                "Form-encoded method must contain at least one Field.",
            )
        if desc.body_mode is BodyMode.MULTIPART and not self.got_part:
            raise self.error(
                InvalidMethodDefinition,
                "Multipart method must contain at least one Part.",
            )

        adapter = self.resolve_call_adapter()
        response_type = adapter.response_type
        response_converter = self.resolve_response_converter(response_type)

        return RequestTemplate(
            service=desc.service,
            method_name=desc.name,
            http_method=desc.http_method,
            base_url=self.client.base_url,
            relative_url=self.relative_url,
            path_names=frozenset(self.placeholders),
            headers=headers,
            content_type=content_type,
            has_body=desc.has_body,
            body_mode=desc.body_mode,
            uses_url_param=self.got_url,
            bindings=bindings,
            signature=desc.signature,
            return_type=desc.return_type,
            response_type=response_type,
            response_converter=response_converter,
            call_adapter=adapter,
        )


def compile_template(desc: MethodDescriptor, client: RestClient) -> RequestTemplate:
    """Compile ``desc`` against ``client``'s converters and call adapters.

    Pure: the same descriptor and client always give an equivalent template.

    Raises:
        ConfigurationError: The declaration is invalid; the subclass names
            the kind of problem.
    """
    template = _Compiler(desc, client).compile()
    logger.debug(
        f"Compiled {desc.qualname}: {desc.http_method} {desc.path!r} "
        f"-> {type_name(template.response_type)}"
    )
    return template
