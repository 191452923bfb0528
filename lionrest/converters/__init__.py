from .base import (
    Converter,
    ConverterFactory,
    RequestConverter,
    ResponseConverter,
    StringConverter,
)
from .builtin import BuiltInConverters
from .pipeline import ConverterPipeline
from .pydantic_ import PydanticConverterFactory
from .scalars import ScalarsConverterFactory

__all__ = (
    "BuiltInConverters",
    "Converter",
    "ConverterFactory",
    "ConverterPipeline",
    "PydanticConverterFactory",
    "RequestConverter",
    "ResponseConverter",
    "ScalarsConverterFactory",
    "StringConverter",
)
