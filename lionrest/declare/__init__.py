from .methods import (
    DELETE,
    GET,
    HEAD,
    HTTP,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    BodyMode,
    MethodMeta,
    form_url_encoded,
    get_meta,
    headers,
    multipart,
)
from .params import (
    Body,
    Field,
    FieldMap,
    Header,
    HeaderMap,
    ParamMarker,
    ParamRole,
    Part,
    PartMap,
    Path,
    Query,
    QueryMap,
    Tag,
    Url,
)

__all__ = (
    "DELETE",
    "GET",
    "HEAD",
    "HTTP",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "BodyMode",
    "MethodMeta",
    "form_url_encoded",
    "get_meta",
    "headers",
    "multipart",
    "Body",
    "Field",
    "FieldMap",
    "Header",
    "HeaderMap",
    "ParamMarker",
    "ParamRole",
    "Part",
    "PartMap",
    "Path",
    "Query",
    "QueryMap",
    "Tag",
    "Url",
)
