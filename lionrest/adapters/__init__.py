from .awaitable import AwaitableCallAdapterFactory
from .base import CallAdapter, CallAdapterFactory, CallAdapterPipeline, unwrap_body
from .blocking import BlockingCallAdapterFactory
from .default import DefaultCallAdapterFactory
from .future import FutureCallAdapterFactory

__all__ = (
    "AwaitableCallAdapterFactory",
    "BlockingCallAdapterFactory",
    "CallAdapter",
    "CallAdapterFactory",
    "CallAdapterPipeline",
    "DefaultCallAdapterFactory",
    "FutureCallAdapterFactory",
    "unwrap_body",
)
