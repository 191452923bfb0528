from .aiohttp_ import AiohttpTransport
from .base import RawCall, Transport
from .httpx_ import HttpxTransport

__all__ = ("AiohttpTransport", "HttpxTransport", "RawCall", "Transport")
