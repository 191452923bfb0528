# tests/conftest.py
import threading

import pytest

from lionrest import (
    CanceledError,
    Headers,
    PydanticConverterFactory,
    RawCall,
    RawResponse,
    RestClient,
    ResponseBody,
    Transport,
)

BASE_URL = "https://api.example.com/"


def make_response(request, status=200, body=b"", content_type=None, headers=()):
    if isinstance(body, str):
        body = body.encode()
    return RawResponse(
        status=status,
        reason="OK" if status < 400 else "Error",
        headers=Headers(headers),
        body=ResponseBody(body, content_type),
        url=request.url,
        request=request,
    )


class FakeRawCall(RawCall):
    def __init__(self, transport, request):
        self.transport = transport
        self.request = request
        self._canceled = False
        self.executed = 0

    @property
    def is_canceled(self):
        return self._canceled

    def cancel(self):
        self._canceled = True
        self.transport.release.set()

    def execute(self):
        self.executed += 1
        self.transport.requests.append(self.request)
        if self.transport.gate is not None:
            self.transport.started.set()
            self.transport.release.wait(5)
        if self._canceled:
            raise CanceledError()
        return self.transport.responder(self.request)


class FakeTransport(Transport):
    """In-memory transport: records requests and answers via ``responder``."""

    def __init__(self):
        self.requests = []
        self.calls = []
        self.closed = False
        self.gate = None
        self.started = threading.Event()
        self.release = threading.Event()
        self.respond()

    def respond(self, status=200, body=b"", content_type=None, headers=()):
        self.responder = lambda request: make_response(
            request, status, body, content_type, headers
        )

    def fail_with(self, exc):
        def responder(request):
            raise exc

        self.responder = responder

    def block(self):
        """Make execute() wait until ``release`` is set (or the call is canceled)."""
        self.gate = True

    def new_call(self, request):
        call = FakeRawCall(self, request)
        self.calls.append(call)
        return call

    def close(self):
        self.closed = True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    client = RestClient(
        base_url=BASE_URL,
        transport=transport,
        converter_factories=[PydanticConverterFactory()],
    )
    yield client
    client.close()
