# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import threading
from typing import Any

import httpx

from .._errors import CanceledError, TransportError
from ..config import settings
from ..http.messages import Headers, RawResponse, Request, ResponseBody
from .base import RawCall, Transport

__all__ = ("HttpxTransport",)

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Blocking transport backed by a shared :class:`httpx.Client`.

    Args:
        client: Client to use. When omitted one is created and owned (closed
            by :meth:`close`).
        timeout: Timeout for the owned client, defaults to ``settings.timeout``.
        **client_kwargs: Extra arguments for the owned client.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float | None = None,
        **client_kwargs: Any,
    ):
        if client is None:
            client_kwargs.setdefault("headers", {"User-Agent": settings.user_agent})
            client = httpx.Client(
                timeout=timeout if timeout is not None else settings.timeout,
                **client_kwargs,
            )
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    @property
    def client(self) -> httpx.Client:
        return self._client

    def new_call(self, request: Request) -> RawCall:
        return _HttpxCall(self._client, request)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class _HttpxCall(RawCall):
    __slots__ = ("_client", "_request", "_response", "_canceled", "_lock")

    def __init__(self, client: httpx.Client, request: Request):
        self._client = client
        self._request = request
        self._response: httpx.Response | None = None
        self._canceled = False
        self._lock = threading.Lock()

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    def cancel(self) -> None:
        with self._lock:
            self._canceled = True
            response = self._response
        if response is not None:
            # aborts a body read in progress on another thread
            response.close()

    def execute(self) -> RawResponse:
        if self._canceled:
            raise CanceledError()
        request = self._request
        outgoing = self._client.build_request(
            request.method,
            request.url,
            headers=list(request.headers),
            content=request.body.content if request.body is not None else None,
        )
        logger.debug(f"--> {request.method} {request.url}")
        try:
            response = self._client.send(outgoing, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{request.method} {request.url} failed: {e}", cause=e
            ) from e

        with self._lock:
            self._response = response
            canceled = self._canceled
        try:
            if canceled:
                raise CanceledError()
            content = response.read()
        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._canceled:
                raise CanceledError(cause=e) from e
            raise TransportError(
                f"Reading response of {request.method} {request.url} failed: {e}",
                cause=e,
            ) from e
        finally:
            response.close()

        logger.debug(f"<-- {response.status_code} {request.url}")
        return RawResponse(
            status=response.status_code,
            reason=response.reason_phrase,
            headers=Headers(response.headers.multi_items()),
            body=ResponseBody(content, response.headers.get("content-type")),
            url=str(response.url),
            request=request,
        )
