from .messages import (
    Headers,
    Invocation,
    MultipartPart,
    RawResponse,
    Request,
    RequestBody,
    Response,
    ResponseBody,
)

__all__ = (
    "Headers",
    "Invocation",
    "MultipartPart",
    "RawResponse",
    "Request",
    "RequestBody",
    "Response",
    "ResponseBody",
)
