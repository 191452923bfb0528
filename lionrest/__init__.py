# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

import logging

from ._errors import (
    AlreadyExecutedError,
    AmbiguousUrlParam,
    ArgumentError,
    CallError,
    CanceledError,
    ConfigurationError,
    ConversionError,
    DuplicatePathPlaceholder,
    HttpError,
    InvalidMethodDefinition,
    LionRestError,
    MalformedHeader,
    MissingPathPlaceholder,
    MultipleBodyParams,
    NoCallAdapterFound,
    NoConverterFound,
    TransportError,
    UnexpectedFormField,
    UnexpectedPart,
    UnresolvedPathPlaceholder,
)
from .adapters import BlockingCallAdapterFactory, CallAdapter, CallAdapterFactory
from .call import Call, Callback, CallState
from .client import ClientConfig, RestClient
from .converters import (
    ConverterFactory,
    PydanticConverterFactory,
    ScalarsConverterFactory,
)
from .declare import (
    DELETE,
    GET,
    HEAD,
    HTTP,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    Body,
    Field,
    FieldMap,
    Header,
    HeaderMap,
    Part,
    PartMap,
    Path,
    Query,
    QueryMap,
    Tag,
    Url,
    form_url_encoded,
    headers,
    multipart,
)
from .executors import CallbackExecutor, ImmediateExecutor, LoopExecutor
from .http import (
    Headers,
    Invocation,
    MultipartPart,
    RawResponse,
    Request,
    RequestBody,
    Response,
    ResponseBody,
)
from .transport import AiohttpTransport, HttpxTransport, RawCall, Transport
from .version import __version__

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = (
    "__version__",
    "AiohttpTransport",
    "AlreadyExecutedError",
    "AmbiguousUrlParam",
    "ArgumentError",
    "BlockingCallAdapterFactory",
    "Body",
    "Call",
    "CallAdapter",
    "CallAdapterFactory",
    "CallError",
    "CallState",
    "Callback",
    "CallbackExecutor",
    "CanceledError",
    "ClientConfig",
    "ConfigurationError",
    "ConversionError",
    "ConverterFactory",
    "DELETE",
    "DuplicatePathPlaceholder",
    "Field",
    "FieldMap",
    "GET",
    "HEAD",
    "HTTP",
    "Header",
    "HeaderMap",
    "Headers",
    "HttpError",
    "HttpxTransport",
    "ImmediateExecutor",
    "InvalidMethodDefinition",
    "Invocation",
    "LionRestError",
    "LoopExecutor",
    "MalformedHeader",
    "MissingPathPlaceholder",
    "MultipartPart",
    "MultipleBodyParams",
    "NoCallAdapterFound",
    "NoConverterFound",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "Part",
    "PartMap",
    "Path",
    "PydanticConverterFactory",
    "Query",
    "QueryMap",
    "RawCall",
    "RawResponse",
    "Request",
    "RequestBody",
    "Response",
    "ResponseBody",
    "RestClient",
    "ScalarsConverterFactory",
    "Tag",
    "Transport",
    "TransportError",
    "UnexpectedFormField",
    "UnexpectedPart",
    "UnresolvedPathPlaceholder",
    "Url",
    "form_url_encoded",
    "headers",
    "logger",
    "multipart",
)
