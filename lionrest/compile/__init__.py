from .builder import RequestBuilder, encode_path_value
from .compiler import (
    MethodDescriptor,
    ParameterDescriptor,
    compile_template,
    describe,
    parse_path_placeholders,
)
from .template import ParameterBinding, RequestTemplate

__all__ = (
    "MethodDescriptor",
    "ParameterBinding",
    "ParameterDescriptor",
    "RequestBuilder",
    "RequestTemplate",
    "compile_template",
    "describe",
    "encode_path_value",
    "parse_path_placeholders",
)
