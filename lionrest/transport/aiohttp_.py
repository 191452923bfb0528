# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any

import aiohttp
import backoff

from .._errors import CanceledError, TransportError
from ..config import settings
from ..http.messages import Headers, RawResponse, Request, ResponseBody
from .base import RawCall, Transport

__all__ = ("AiohttpTransport",)

logger = logging.getLogger(__name__)


class AiohttpTransport(Transport):
    """Transport running an :class:`aiohttp.ClientSession` on its own loop thread.

    Blocking callers submit coroutines to the private loop, so cancelling a
    call cancels the underlying aiohttp request instead of merely ignoring
    its result. Connection errors and timeouts are retried with exponential
    backoff up to ``max_retries`` attempts.

    Args:
        timeout: Total request timeout, defaults to ``settings.timeout``.
        max_retries: Attempts per request, defaults to ``settings.max_retries``.
        **session_kwargs: Extra arguments for ``aiohttp.ClientSession``.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        **session_kwargs: Any,
    ):
        self.timeout = timeout if timeout is not None else settings.timeout
        self.max_retries = (
            max_retries if max_retries is not None else settings.max_retries
        )
        session_kwargs.setdefault("headers", {"User-Agent": settings.user_agent})
        self._session_kwargs = session_kwargs
        self._session: aiohttp.ClientSession | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

        logger.debug(
            f"Initialized AiohttpTransport with timeout={self.timeout}, "
            f"max_retries={self.max_retries}"
        )

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever,
                    name="lionrest-aiohttp",
                    daemon=True,
                )
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop

    def submit(self, request: Request) -> concurrent.futures.Future[RawResponse]:
        loop = self._ensure_loop()
        return asyncio.run_coroutine_threadsafe(self._send(request), loop)

    def _create_http_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            **self._session_kwargs,
        )

    async def _send(self, request: Request) -> RawResponse:
        # only touched from the loop thread
        if self._session is None:
            self._session = self._create_http_session()
        session = self._session

        async def _make_request():
            async with session.request(
                method=request.method,
                url=request.url,
                headers=list(request.headers),
                data=request.body.content if request.body is not None else None,
            ) as response:
                content = await response.read()
                return RawResponse(
                    status=response.status,
                    reason=response.reason or "",
                    headers=Headers(response.headers.items()),
                    body=ResponseBody(content, response.headers.get("Content-Type")),
                    url=str(response.url),
                    request=request,
                )

        backoff_handler = backoff.on_exception(
            backoff.expo,
            (aiohttp.ClientError, asyncio.TimeoutError),
            max_tries=max(1, self.max_retries),
            jitter=backoff.full_jitter,
        )
        logger.debug(f"--> {request.method} {request.url}")
        return await backoff_handler(_make_request)()

    def new_call(self, request: Request) -> RawCall:
        return _AiohttpCall(self, request)

    def close(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = self._thread = None
        if loop is None:
            return

        async def _close_session():
            if self._session is not None:
                await self._session.close()
                self._session = None

        asyncio.run_coroutine_threadsafe(_close_session(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()


class _AiohttpCall(RawCall):
    __slots__ = ("_transport", "_request", "_future", "_canceled", "_lock")

    def __init__(self, transport: AiohttpTransport, request: Request):
        self._transport = transport
        self._request = request
        self._future: concurrent.futures.Future | None = None
        self._canceled = False
        self._lock = threading.Lock()

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    def cancel(self) -> None:
        with self._lock:
            self._canceled = True
            future = self._future
        if future is not None:
            future.cancel()

    def execute(self) -> RawResponse:
        with self._lock:
            if self._canceled:
                raise CanceledError()
            future = self._future = self._transport.submit(self._request)
        try:
            return future.result()
        except concurrent.futures.CancelledError as e:
            raise CanceledError(cause=e) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"{self._request.method} {self._request.url} failed: "
                f"{e or type(e).__name__}",
                cause=e,
            ) from e
