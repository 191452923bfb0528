# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import concurrent.futures
import inspect
import logging
import threading
from collections.abc import Callable, Iterator
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .adapters.base import CallAdapter, CallAdapterFactory, CallAdapterPipeline
from .call import Call
from .compile.compiler import compile_template, describe
from .compile.template import RequestTemplate
from .config import settings
from .converters.base import (
    ConverterFactory,
    RequestConverter,
    ResponseConverter,
    StringConverter,
)
from .converters.pipeline import ConverterPipeline
from .declare.methods import get_meta
from .executors import CallbackExecutor, ImmediateExecutor
from .proxy import ServiceProxy
from .transport.base import Transport

__all__ = ("ClientConfig", "RestClient", "service_methods")

logger = logging.getLogger(__name__)


class ClientConfig(BaseModel):
    """Immutable client configuration.

    Factory lists are fixed once the client is built; configure a new client
    to change them.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    base_url: str
    converter_factories: tuple[ConverterFactory, ...] = ()
    call_adapter_factories: tuple[CallAdapterFactory, ...] = ()
    transport: Transport | None = Field(
        None, description="Defaults to an owned HttpxTransport"
    )
    callback_executor: CallbackExecutor = Field(default_factory=ImmediateExecutor)
    io_executor: concurrent.futures.Executor | None = Field(
        None, description="Runs enqueued calls; defaults to an owned thread pool"
    )
    validate_eagerly: bool = Field(
        default_factory=lambda: settings.validate_eagerly
    )

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"base_url must be absolute, got {value!r}")
        if not value.endswith("/"):
            raise ValueError(f"base_url must end in /: {value}")
        return value


def service_methods(service: type) -> Iterator[tuple[str, Callable[..., Any]]]:
    """``(name, function)`` for every HTTP-decorated method of ``service``."""
    for name, func in inspect.getmembers(service, inspect.isfunction):
        meta = get_meta(func)
        if meta is not None and meta.http_method is not None:
            yield name, func


class RestClient:
    """Compiles service declarations and runs their calls.

    Args:
        config: A :class:`ClientConfig`, or a dict of its fields.
        **kwargs: Fields overriding ``config``.

    Example:
        ```python
        client = RestClient(base_url="https://api.example.com/")
        users = client.create(UserService)
        call = users.group_users(42, sort="desc")
        response = call.execute()
        ```
    """

    def __init__(self, config: dict | ClientConfig | None = None, **kwargs: Any):
        if config is None:
            config = {}
        if isinstance(config, dict):
            _config = ClientConfig(**config, **kwargs)
        elif isinstance(config, ClientConfig):
            _config = (
                ClientConfig.model_validate({**dict(config), **kwargs})
                if kwargs
                else config
            )
        else:
            raise ValueError("Config must be a dict or ClientConfig instance")
        self.config = _config

        self._converters = ConverterPipeline(_config.converter_factories)
        self._adapters = CallAdapterPipeline(_config.call_adapter_factories)
        self._transport = _config.transport
        self._io_executor = _config.io_executor
        self._owned: list[Any] = []
        self._resource_lock = threading.Lock()

        self._templates: dict[tuple[type, str], RequestTemplate] = {}
        self._template_locks: dict[tuple[type, str], threading.Lock] = {}
        self._locks_lock = threading.Lock()

        logger.debug(
            f"Initialized RestClient with base_url={_config.base_url}, "
            f"converters={len(self._converters.factories)}, "
            f"call_adapters={len(self._adapters.factories)}"
        )

    # --- configuration -----------------------------------------------------

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def converter_factories(self) -> tuple[ConverterFactory, ...]:
        """Effective converter order, built-ins first."""
        return self._converters.factories

    @property
    def call_adapter_factories(self) -> tuple[CallAdapterFactory, ...]:
        """Effective adapter order, defaults last."""
        return self._adapters.factories

    @property
    def callback_executor(self) -> CallbackExecutor:
        return self.config.callback_executor

    @property
    def transport(self) -> Transport:
        if self._transport is None:
            with self._resource_lock:
                if self._transport is None:
                    from .transport.httpx_ import HttpxTransport

                    transport = HttpxTransport()
                    self._owned.append(transport)
                    self._transport = transport
        return self._transport

    @property
    def io_executor(self) -> concurrent.futures.Executor:
        if self._io_executor is None:
            with self._resource_lock:
                if self._io_executor is None:
                    executor = concurrent.futures.ThreadPoolExecutor(
                        max_workers=settings.max_io_workers,
                        thread_name_prefix="lionrest-io",
                    )
                    self._owned.append(executor)
                    self._io_executor = executor
        return self._io_executor

    # --- converters and adapters -----------------------------------------

    def response_body_converter(
        self, type_: Any, annotations: tuple[Any, ...] = ()
    ) -> ResponseConverter | None:
        return self._converters.response_body_converter(type_, annotations, self)

    def request_body_converter(
        self, type_: Any, annotations: tuple[Any, ...] = ()
    ) -> RequestConverter | None:
        return self._converters.request_body_converter(type_, annotations, self)

    def string_converter(
        self, type_: Any, annotations: tuple[Any, ...] = ()
    ) -> StringConverter:
        return self._converters.string_converter(type_, annotations, self)

    def call_adapter(
        self, return_type: Any, annotations: tuple[Any, ...] = ()
    ) -> CallAdapter | None:
        return self._adapters.get(return_type, annotations, self)

    # --- services ---------------------------------------------------------

    def create(self, service: type) -> ServiceProxy:
        """Dispatch object implementing ``service``'s decorated methods.

        Raises:
            TypeError: ``service`` is not a class.
            ConfigurationError: With ``validate_eagerly``, the first method
                that fails to compile.
        """
        if not inspect.isclass(service):
            raise TypeError(f"Service declarations must be classes, got {service!r}")
        if self.config.validate_eagerly:
            for name, func in service_methods(service):
                self.template_for(service, name, func)
        return ServiceProxy(self, service)

    def template_for(
        self, service: type, name: str, func: Callable[..., Any]
    ) -> RequestTemplate:
        """Compiled template for ``service.name``, compiling it on first use.

        Concurrent first calls compile once. A failed compile is not cached,
        so every later call raises again.
        """
        key = (service, name)
        template = self._templates.get(key)
        if template is not None:
            return template
        with self._locks_lock:
            lock = self._template_locks.setdefault(key, threading.Lock())
        with lock:
            template = self._templates.get(key)
            if template is None:
                template = compile_template(describe(service, name, func), self)
                self._templates[key] = template
        return template

    def invoke(self, template: RequestTemplate, args: tuple, kwargs: dict) -> Any:
        arguments = template.bind_arguments(args, kwargs)
        call: Call = Call(template, arguments, self)
        logger.debug(f"Dispatching {template.qualname}")
        return template.call_adapter.adapt(call)

    # --- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Release the transport and thread pool this client created."""
        with self._resource_lock:
            owned, self._owned = self._owned, []
        for resource in owned:
            if isinstance(resource, concurrent.futures.Executor):
                resource.shutdown(wait=False)
            else:
                resource.close()
        if owned:
            logger.debug(f"Closed {len(owned)} owned resource(s)")

    def __enter__(self) -> RestClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"RestClient(base_url={self.base_url!r})"
