# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ._errors import (
    AlreadyExecutedError,
    CallError,
    CanceledError,
    ConversionError,
    TransportError,
)
from .http.messages import RawResponse, Request, Response, ResponseBody

if TYPE_CHECKING:
    from .client import RestClient
    from .compile.template import RequestTemplate
    from .transport.base import RawCall

T = TypeVar("T")

__all__ = ("CallState", "Callback", "Call")

logger = logging.getLogger(__name__)

_EMPTY_BODY = ResponseBody(b"")


class CallState(str, Enum):
    """Lifecycle of a :class:`Call`.

    Attributes:
        READY: Created, not yet executed.
        EXECUTING: Handed to the transport.
        COMPLETED: A response arrived and its body was converted.
        FAILED: Transport, request building or conversion failed.
        CANCELED: Canceled before a result was delivered.
    """

    READY = "ready"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (CallState.COMPLETED, CallState.FAILED, CallState.CANCELED)


class Callback(Generic[T]):
    """Receives the outcome of :meth:`Call.enqueue`.

    Exactly one of the two methods is invoked, through the client's callback
    executor.
    """

    def on_response(self, call: Call[T], response: Response[T]) -> None:
        """A response arrived; ``response.is_successful`` may still be false."""

    def on_failure(self, call: Call[T], error: CallError) -> None:
        """The exchange failed or was canceled."""

    @classmethod
    def of(
        cls,
        on_response: Callable[[Call[T], Response[T]], Any],
        on_failure: Callable[[Call[T], CallError], Any] | None = None,
    ) -> Callback[T]:
        """Build a callback from plain functions."""
        return _FunctionCallback(on_response, on_failure)


class _FunctionCallback(Callback[T]):
    __slots__ = ("_on_response", "_on_failure")

    def __init__(self, on_response, on_failure):
        self._on_response = on_response
        self._on_failure = on_failure

    def on_response(self, call, response):
        self._on_response(call, response)

    def on_failure(self, call, error):
        if self._on_failure is not None:
            self._on_failure(call, error)
        else:
            logger.error(f"{call!r} failed: {error}")


class Call(Generic[T]):
    """One single-use, cloneable, cancelable HTTP exchange.

    The request is built lazily from the compiled template and the bound
    arguments; a build failure is remembered and reported again by every
    later attempt on this instance.
    """

    __slots__ = (
        "_template",
        "_arguments",
        "_client",
        "_lock",
        "_state",
        "_executed",
        "_canceled",
        "_raw_call",
        "_request",
        "_creation_failure",
        "duration",
    )

    def __init__(
        self,
        template: RequestTemplate,
        arguments: tuple[Any, ...],
        client: RestClient,
    ):
        self._template = template
        self._arguments = arguments
        self._client = client
        self._lock = threading.Lock()
        self._state = CallState.READY
        self._executed = False
        self._canceled = False
        self._raw_call: RawCall | None = None
        self._request: Request | None = None
        self._creation_failure: CallError | None = None
        self.duration: float | None = None

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def is_executed(self) -> bool:
        return self._executed

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def template(self) -> RequestTemplate:
        return self._template

    def request(self) -> Request:
        """The request this call sends, built on first access."""
        with self._lock:
            return self._get_request()

    def _get_request(self) -> Request:
        if self._request is not None:
            return self._request
        if self._creation_failure is not None:
            raise self._creation_failure
        try:
            self._request = self._template.build(self._arguments)
        except CallError as e:
            self._creation_failure = e
            raise
        return self._request

    def clone(self) -> Call[T]:
        """A fresh READY call sending an equivalent request."""
        return Call(self._template, self._arguments, self._client)

    def cancel(self) -> None:
        with self._lock:
            self._canceled = True
            if not self._state.is_terminal:
                self._state = CallState.CANCELED
            raw_call = self._raw_call
        if raw_call is not None:
            logger.warning(f"Canceling in-flight {self!r}")
            raw_call.cancel()

    # --- execution ---------------------------------------------------------

    def _begin(self) -> RawCall:
        """READY -> EXECUTING, returning the transport call to run."""
        with self._lock:
            if self._executed:
                raise AlreadyExecutedError("Already executed.")
            self._executed = True
            if self._canceled:
                raise CanceledError()
            self._state = CallState.EXECUTING
            try:
                request = self._get_request()
            except CallError:
                self._state = CallState.FAILED
                raise
        try:
            raw_call = self._client.transport.new_call(request)
        except CallError as e:
            raise self._fail(e)
        except Exception as e:
            raise self._fail(TransportError(str(e) or type(e).__name__, cause=e))
        with self._lock:
            self._raw_call = raw_call
            canceled = self._canceled
        if canceled:
            raw_call.cancel()
        return raw_call

    def _fail(self, error: CallError) -> CallError:
        with self._lock:
            if self._canceled and not isinstance(error, CanceledError):
                error = CanceledError(cause=error)
            if self._state is CallState.EXECUTING:
                self._state = (
                    CallState.CANCELED
                    if isinstance(error, CanceledError)
                    else CallState.FAILED
                )
        logger.error(f"{self!r} failed: {error}")
        return error

    def _run(self, raw_call: RawCall) -> Response[T]:
        start = time.monotonic()
        try:
            raw = raw_call.execute()
        except CallError as e:
            raise self._fail(e)
        except Exception as e:
            raise self._fail(TransportError(str(e) or type(e).__name__, cause=e))
        finally:
            self.duration = time.monotonic() - start

        try:
            response = self.parse_response(raw)
        except ConversionError as e:
            raise self._fail(e)

        with self._lock:
            if self._canceled:
                raise CanceledError()
            self._state = CallState.COMPLETED
        return response

    def execute(self) -> Response[T]:
        """Send the request and block until the response is converted.

        Raises:
            AlreadyExecutedError: This instance was executed before.
            CanceledError: The call was canceled.
            TransportError: The network exchange failed.
            ConversionError: A request or response body could not be converted.
            ArgumentError: An argument could not be bound into the request.
        """
        return self._run(self._begin())

    def enqueue(self, callback: Callback[T]) -> None:
        """Send the request on the client's I/O pool and report to ``callback``.

        Raises:
            AlreadyExecutedError: This instance was executed before.
        """
        try:
            raw_call = self._begin()
        except AlreadyExecutedError:
            raise
        except CallError as e:
            self._deliver_failure(callback, e)
            return
        try:
            self._client.io_executor.submit(self._run_enqueued, raw_call, callback)
        except RuntimeError as e:
            # the pool refuses work once shut down
            error = TransportError(f"Unable to schedule {self!r}: {e}", cause=e)
            self._deliver_failure(callback, self._fail(error))

    def _run_enqueued(self, raw_call: RawCall, callback: Callback[T]) -> None:
        try:
            response = self._run(raw_call)
        except CallError as e:
            self._deliver_failure(callback, e)
            return

        def deliver():
            # cancellation may have arrived while waiting for the dispatcher
            if self._canceled:
                self._invoke_callback(callback.on_failure, CanceledError())
            else:
                self._invoke_callback(callback.on_response, response)

        self._client.callback_executor.execute(deliver)

    def _deliver_failure(self, callback: Callback[T], error: CallError) -> None:
        self._client.callback_executor.execute(
            lambda: self._invoke_callback(callback.on_failure, error)
        )

    def _invoke_callback(self, method: Callable[[Call[T], Any], Any], value: Any) -> None:
        try:
            method(self, value)
        except Exception:
            logger.exception(f"Callback for {self!r} raised")

    def parse_response(self, raw: RawResponse) -> Response[T]:
        """Wrap ``raw``, converting the body of 2xx responses."""
        if not raw.is_successful:
            return Response.error(raw.body, raw)
        if raw.status in (204, 205):
            return Response.success(None, raw)
        body = raw.body if raw.body is not None else _EMPTY_BODY
        try:
            value = self._template.response_converter(body)
        except Exception as e:
            raise ConversionError(
                f"Unable to convert response body of {self._template.qualname}: {e}",
                cause=e,
            ) from e
        return Response.success(value, raw)

    def __repr__(self) -> str:
        return (
            f"Call({self._template.http_method} {self._template.qualname}, "
            f"state={self._state.value})"
        )
