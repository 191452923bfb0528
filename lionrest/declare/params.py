# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Parameter role markers.

A marker is attached to a service method parameter either through
``typing.Annotated`` or as the parameter default:

```python
@GET("group/{id}/users")
def group_users(
    self,
    id: Annotated[int, Path()],
    sort: Annotated[str | None, Query("sort")] = None,
) -> Call[list[User]]: ...

@GET("group/{id}/users")
def group_users(self, id: int = Path(), sort: str = Query()) -> Call[list[User]]: ...
```

When a marker that takes a name is given none, the parameter name is used
(``Header`` turns underscores into hyphens).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

__all__ = (
    "ParamRole",
    "ParamMarker",
    "Path",
    "Query",
    "QueryMap",
    "Header",
    "HeaderMap",
    "Field",
    "FieldMap",
    "Part",
    "PartMap",
    "Body",
    "Url",
    "Tag",
)


class ParamRole(str, Enum):
    PATH = "path"
    QUERY = "query"
    QUERY_MAP = "query-map"
    HEADER = "header"
    HEADER_MAP = "header-map"
    FIELD = "field"
    FIELD_MAP = "field-map"
    PART = "part"
    PART_MAP = "part-map"
    BODY = "body"
    URL = "url"
    TAG = "tag"

    @classmethod
    def allowed(cls) -> set[str]:
        return {i.value for i in cls.__members__.values()}


@dataclass(slots=True, frozen=True)
class ParamMarker:
    role: ClassVar[ParamRole]

    def key_for(self, parameter_name: str) -> str | None:
        """Binding key for this marker (path variable, header name...)."""
        return None


@dataclass(slots=True, frozen=True)
class _Named(ParamMarker):
    name: str | None = None

    def key_for(self, parameter_name: str) -> str:
        return self.name if self.name is not None else parameter_name


@dataclass(slots=True, frozen=True)
class Path(_Named):
    """Replace ``{name}`` in the relative URL.

    Values are percent-encoded unless ``encoded`` is true.
    """

    encoded: bool = False
    role: ClassVar[ParamRole] = ParamRole.PATH


@dataclass(slots=True, frozen=True)
class Query(_Named):
    """Append ``name=value`` to the query; ``None`` is skipped, sequences repeat."""

    encoded: bool = False
    role: ClassVar[ParamRole] = ParamRole.QUERY


@dataclass(slots=True, frozen=True)
class QueryMap(ParamMarker):
    encoded: bool = False
    role: ClassVar[ParamRole] = ParamRole.QUERY_MAP


@dataclass(slots=True, frozen=True)
class Header(_Named):
    """Add a header; ``None`` omits it. Static headers are kept as well."""

    role: ClassVar[ParamRole] = ParamRole.HEADER

    def key_for(self, parameter_name: str) -> str:
        if self.name is not None:
            return self.name
        return parameter_name.replace("_", "-")


@dataclass(slots=True, frozen=True)
class HeaderMap(ParamMarker):
    role: ClassVar[ParamRole] = ParamRole.HEADER_MAP


@dataclass(slots=True, frozen=True)
class Field(_Named):
    """Named pair for a form-encoded body."""

    encoded: bool = False
    role: ClassVar[ParamRole] = ParamRole.FIELD


@dataclass(slots=True, frozen=True)
class FieldMap(ParamMarker):
    encoded: bool = False
    role: ClassVar[ParamRole] = ParamRole.FIELD_MAP


@dataclass(slots=True, frozen=True)
class Part(_Named):
    """One part of a multipart body.

    A parameter typed ``MultipartPart`` is sent as-is and must not be named.
    """

    encoding: str = "binary"
    filename: str | None = None
    role: ClassVar[ParamRole] = ParamRole.PART


@dataclass(slots=True, frozen=True)
class PartMap(ParamMarker):
    encoding: str = "binary"
    role: ClassVar[ParamRole] = ParamRole.PART_MAP


@dataclass(slots=True, frozen=True)
class Body(ParamMarker):
    role: ClassVar[ParamRole] = ParamRole.BODY


@dataclass(slots=True, frozen=True)
class Url(ParamMarker):
    """Full or relative URL replacing the method's path."""

    role: ClassVar[ParamRole] = ParamRole.URL


@dataclass(slots=True, frozen=True)
class Tag(ParamMarker):
    """Attach the value to ``Request.tags`` under its declared type."""

    role: ClassVar[ParamRole] = ParamRole.TAG
