# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""Tests for request-template compilation and request building."""

import inspect
from collections.abc import Awaitable
from enum import Enum
from typing import Annotated

import pytest
from pydantic import BaseModel

from lionrest import (
    GET,
    HEAD,
    POST,
    AmbiguousUrlParam,
    ArgumentError,
    Body,
    Call,
    DuplicatePathPlaceholder,
    Field,
    FieldMap,
    Header,
    HeaderMap,
    InvalidMethodDefinition,
    Invocation,
    MalformedHeader,
    MissingPathPlaceholder,
    MultipartPart,
    MultipleBodyParams,
    NoCallAdapterFound,
    NoConverterFound,
    Part,
    PartMap,
    Path,
    PydanticConverterFactory,
    Query,
    QueryMap,
    Response,
    ResponseBody,
    RestClient,
    ScalarsConverterFactory,
    Tag,
    UnexpectedFormField,
    UnexpectedPart,
    UnresolvedPathPlaceholder,
    Url,
    form_url_encoded,
    headers,
    multipart,
)
from lionrest.compile import (
    MethodDescriptor,
    ParameterDescriptor,
    compile_template,
    describe,
    parse_path_placeholders,
)
from lionrest.declare import BodyMode

from conftest import BASE_URL


class User(BaseModel):
    id: int
    name: str


class Sort(Enum):
    ASC = "asc"
    DESC = "desc"


class TraceId(str):
    pass


class GroupApi:
    @GET("group/{id}/users")
    def group_users(
        self,
        id: Annotated[int, Path()],
        sort: Annotated[str | None, Query()] = None,
    ) -> Call[list[User]]: ...

    @GET("group/{id}/users")
    def group_users_by_default(self, id: int = Path(), sort: str = Query("sort")) -> Call[ResponseBody]: ...

    @GET("files/{name}")
    def file(self, name: Annotated[str, Path()]) -> Call[ResponseBody]: ...

    @GET("files/{name}")
    def file_encoded(self, name: Annotated[str, Path(encoded=True)]) -> Call[ResponseBody]: ...

    @GET("files/{folder}/{name}")
    def nested_file(
        self,
        folder: Annotated[str, Path(encoded=True)],
        name: Annotated[str, Path()],
    ) -> Call[ResponseBody]: ...

    @GET("search?v=1")
    def search(
        self,
        tag: Annotated[list[str] | None, Query("tag")] = None,
        order: Annotated[Sort | None, Query()] = None,
        q: Annotated[str | None, Query()] = None,
    ) -> Call[ResponseBody]: ...

    @GET("search")
    def search_map(self, filters: Annotated[dict[str, str], QueryMap()]) -> Call[ResponseBody]: ...

    @GET()
    def fetch(
        self,
        url: Annotated[str, Url()],
        page: Annotated[int | None, Query()] = None,
    ) -> Call[ResponseBody]: ...

    @GET("traced")
    def traced(self, trace: Annotated[TraceId | None, Tag()] = None) -> Call[ResponseBody]: ...

    @POST("users")
    def create_user(self, user: Annotated[User, Body()]) -> Call[User]: ...

    @POST("ping")
    def ping(self) -> Call[None]: ...

    @HEAD("users")
    def head_users(self) -> Call[None]: ...

    @GET("users/{id}")
    async def get_user(self, id: Annotated[int, Path()]) -> User: ...


class HeaderApi:
    @headers("X-Foo: a", "X-Foo: b", "Accept: application/json")
    @GET("headers")
    def static(self, foo: Annotated[str | None, Header("X-Foo")] = None) -> Call[ResponseBody]: ...

    @GET("headers")
    def derived(self, x_trace_id: Annotated[str, Header()]) -> Call[ResponseBody]: ...

    @GET("headers")
    def mapped(self, extra: Annotated[dict[str, str], HeaderMap()]) -> Call[ResponseBody]: ...

    @headers("Content-Type: text/csv")
    @POST("upload")
    def csv(self, data: Annotated[bytes, Body()]) -> Call[ResponseBody]: ...

    @headers("Content-Type: text/csv", "Content-Type: text/plain")
    @POST("upload")
    def csv_twice(self, data: Annotated[bytes, Body()]) -> Call[ResponseBody]: ...

    @headers("Content-Type: text/csv")
    @POST("upload")
    def csv_typed(
        self,
        data: Annotated[bytes, Body()],
        media: Annotated[str | None, Header("Content-Type")] = None,
    ) -> Call[ResponseBody]: ...


class FormApi:
    @POST("login")
    @form_url_encoded
    def login(
        self,
        user: Annotated[str, Field()],
        password: Annotated[str, Field("pass")],
    ) -> Call[ResponseBody]: ...

    @POST("login")
    @form_url_encoded
    def login_encoded(self, token: Annotated[str, Field(encoded=True)]) -> Call[ResponseBody]: ...

    @POST("login")
    @form_url_encoded
    def login_map(self, fields: Annotated[dict[str, str], FieldMap()]) -> Call[ResponseBody]: ...


class UploadApi:
    @POST("upload")
    @multipart
    def upload(
        self,
        description: Annotated[str, Part()],
        file: Annotated[bytes, Part("file", filename="a.txt")],
    ) -> Call[ResponseBody]: ...

    @POST("upload")
    @multipart
    def upload_raw(self, parts: Annotated[list[MultipartPart], Part()]) -> Call[ResponseBody]: ...

    @POST("upload")
    @multipart
    def upload_map(self, files: Annotated[dict[str, bytes], PartMap()]) -> Call[ResponseBody]: ...


class BrokenApi:
    @GET("users")
    def missing_placeholder(self, id: Annotated[int, Path()]) -> Call[ResponseBody]: ...

    @GET("users/{id}")
    def unresolved_placeholder(self) -> Call[ResponseBody]: ...

    @GET("users/{id}/{id}")
    def duplicate_placeholder(self, id: Annotated[int, Path()]) -> Call[ResponseBody]: ...

    @GET("users?id={id}")
    def placeholder_in_query(self, id: Annotated[int, Path()]) -> Call[ResponseBody]: ...

    @POST("form")
    @form_url_encoded
    def body_with_form(
        self,
        name: Annotated[str, Field()],
        body: Annotated[User, Body()],
    ) -> Call[ResponseBody]: ...

    @POST("parts")
    @multipart
    def body_with_multipart(
        self,
        name: Annotated[str, Part()],
        body: Annotated[User, Body()],
    ) -> Call[ResponseBody]: ...

    @POST("plain")
    def field_without_form(self, name: Annotated[str, Field()]) -> Call[ResponseBody]: ...

    @POST("plain")
    def part_without_multipart(self, name: Annotated[str, Part()]) -> Call[ResponseBody]: ...

    @POST("users")
    def two_bodies(
        self, a: Annotated[User, Body()], b: Annotated[User, Body()]
    ) -> Call[ResponseBody]: ...

    @GET("users")
    def body_on_get(self, user: Annotated[User, Body()]) -> Call[ResponseBody]: ...

    @GET()
    def two_urls(self, a: Annotated[str, Url()], b: Annotated[str, Url()]) -> Call[ResponseBody]: ...

    @GET("users")
    def url_with_path(self, url: Annotated[str, Url()]) -> Call[ResponseBody]: ...

    @GET()
    def no_url(self) -> Call[ResponseBody]: ...

    @GET("users")
    def no_role(self, name: str) -> Call[ResponseBody]: ...

    @GET("users")
    def variadic(self, *ids: Annotated[int, Query()]) -> Call[ResponseBody]: ...

    @POST("form")
    @form_url_encoded
    def empty_form(self) -> Call[ResponseBody]: ...

    @POST("parts")
    @multipart
    def empty_multipart(self) -> Call[ResponseBody]: ...

    @headers("NoColonHere")
    @GET("users")
    def malformed_header(self) -> Call[ResponseBody]: ...

    @GET("users")
    def no_adapter(self) -> list[User]: ...

    @GET("users")
    def bare_call(self) -> Call: ...

    @GET("users")
    def response_as_body(self) -> Call[Response[User]]: ...

    @GET("users")
    def unresolvable_hint(self) -> Call["MissingModel"]: ...

    @HEAD("users")
    def head_with_body(self) -> Call[User]: ...

    @POST("parts")
    @multipart
    def named_raw_part(self, part: Annotated[MultipartPart, Part("x")]) -> Call[ResponseBody]: ...

    def undecorated(self) -> Call[ResponseBody]: ...


def compile_method(client, service, name):
    return client.template_for(service, name, getattr(service, name))


def build(client, service, name, *args, **kwargs):
    template = compile_method(client, service, name)
    return template.build(template.bind_arguments(args, kwargs))


class TestPathsAndQueries:
    def test_group_users_example(self, client):
        request = build(client, GroupApi, "group_users", 42, sort="desc")
        assert request.method == "GET"
        assert request.url == BASE_URL + "group/42/users?sort=desc"

    def test_marker_as_default_value(self, client):
        request = build(client, GroupApi, "group_users_by_default", 42, "desc")
        assert request.url == BASE_URL + "group/42/users?sort=desc"

    def test_none_query_is_omitted(self, client):
        request = build(client, GroupApi, "group_users", 7)
        assert request.url == BASE_URL + "group/7/users"

    def test_path_value_is_percent_encoded(self, client):
        request = build(client, GroupApi, "file", "a b/c?")
        assert request.url == BASE_URL + "files/a%20b%2Fc%3F"

    def test_encoded_path_value_is_left_alone(self, client):
        request = build(client, GroupApi, "file_encoded", "dir/a%20b")
        assert request.url == BASE_URL + "files/dir/a%20b"

    def test_substituted_value_is_not_substituted_again(self, client):
        request = build(client, GroupApi, "nested_file", "{name}", "x")
        assert request.url == BASE_URL + "files/{name}/x"

    @pytest.mark.parametrize("value", ["..", ".", "%2E%2E"])
    def test_path_traversal_is_rejected(self, client, value):
        with pytest.raises(ArgumentError, match="parameter #1: name"):
            build(client, GroupApi, "file_encoded", value)

    def test_none_path_value_is_rejected(self, client):
        with pytest.raises(ArgumentError):
            build(client, GroupApi, "file", None)

    def test_literal_query_sequences_and_enums(self, client):
        request = build(
            client, GroupApi, "search", tag=["a", "b"], order=Sort.DESC, q="x y&z"
        )
        assert request.url == BASE_URL + "search?v=1&tag=a&tag=b&order=desc&q=x%20y%26z"

    def test_query_map(self, client):
        request = build(client, GroupApi, "search_map", {"a": "1", "b": "2"})
        assert request.url == BASE_URL + "search?a=1&b=2"

    def test_query_map_rejects_none_value(self, client):
        with pytest.raises(ArgumentError, match="None value"):
            build(client, GroupApi, "search_map", {"a": None})

    def test_absolute_url_bypasses_base(self, client):
        request = build(client, GroupApi, "fetch", "https://other.example.org/x", page=2)
        assert request.url == "https://other.example.org/x?page=2"

    def test_relative_url_resolves_against_base(self, client):
        request = build(client, GroupApi, "fetch", "v2/items")
        assert request.url == BASE_URL + "v2/items"


class TestPathPlaceholderProperty:
    @pytest.mark.parametrize(
        "path,names,expected",
        [
            ("a/{x}/b/{y}", ["x", "y"], "a/1/b/2"),
            ("static/{y}/mid/{x}.json", ["x", "y"], "static/2/mid/1.json"),
            ("{x}", ["x"], "1"),
        ],
    )
    def test_matching_sets_substitute_each_placeholder(self, client, path, names, expected):
        template = compile_template(_path_descriptor(path, names), client)
        values = {"x": "1", "y": "2"}
        request = template.build(tuple(values[n] for n in names))
        assert request.url == BASE_URL + expected

    @pytest.mark.parametrize(
        "path,names,error",
        [
            ("a/{x}", ["x", "y"], MissingPathPlaceholder),
            ("a/{x}/{y}", ["x"], UnresolvedPathPlaceholder),
            ("a/{x}/{x}", ["x"], DuplicatePathPlaceholder),
            ("a", ["x"], MissingPathPlaceholder),
        ],
    )
    def test_mismatched_sets_fail(self, client, path, names, error):
        with pytest.raises(error):
            compile_template(_path_descriptor(path, names), client)

    def test_parse_path_placeholders(self):
        assert parse_path_placeholders("a/{x}/{y_1}/{not-valid}") == ["x", "y_1"]


def _path_descriptor(path, names):
    return MethodDescriptor(
        service=GroupApi,
        name="generated",
        http_method="GET",
        path=path,
        has_body=False,
        headers=(),
        body_mode=BodyMode.NONE,
        return_type=Call[ResponseBody],
        parameters=tuple(
            ParameterDescriptor(i, n, Path(), str, ()) for i, n in enumerate(names)
        ),
        signature=inspect.Signature(
            [inspect.Parameter(n, inspect.Parameter.POSITIONAL_OR_KEYWORD) for n in names]
        ),
    )


class TestHeaders:
    def test_duplicate_static_headers_are_all_sent(self, client):
        request = build(client, HeaderApi, "static")
        assert request.headers.get_all("X-Foo") == ["a", "b"]
        assert request.headers.get("accept") == "application/json"

    def test_dynamic_header_is_added_to_static_ones(self, client):
        request = build(client, HeaderApi, "static", foo="c")
        assert request.headers.get_all("X-Foo") == ["a", "b", "c"]

    def test_header_name_defaults_to_hyphenated_parameter(self, client):
        request = build(client, HeaderApi, "derived", "abc")
        assert request.headers.get("x-trace-id") == "abc"

    def test_header_map(self, client):
        request = build(client, HeaderApi, "mapped", {"X-A": "1", "X-B": "2"})
        assert request.headers.get("X-A") == "1"
        assert request.headers.get("X-B") == "2"

    def test_static_content_type_applies_to_body(self, client):
        request = build(client, HeaderApi, "csv", b"a,b")
        assert request.headers.get_all("Content-Type") == ["text/csv"]
        assert request.body.content_type == "text/csv"
        assert request.body.content == b"a,b"

    def test_duplicate_static_content_types_are_all_sent(self, client):
        request = build(client, HeaderApi, "csv_twice", b"a,b")
        assert request.headers.get_all("Content-Type") == ["text/csv", "text/plain"]
        assert request.body.content_type == "text/csv"

    def test_dynamic_content_type_keeps_static_one(self, client):
        request = build(client, HeaderApi, "csv_typed", b"a,b", "application/x-dyn")
        assert request.headers.get_all("Content-Type") == [
            "text/csv",
            "application/x-dyn",
        ]

    def test_body_media_type_is_fallback_only(self, client):
        request = build(client, HeaderApi, "csv_typed", b"a,b")
        assert request.headers.get_all("Content-Type") == ["text/csv"]
        assert request.body.content_type == "text/csv"


class TestBodies:
    def test_json_body(self, client):
        request = build(client, GroupApi, "create_user", User(id=1, name="ann"))
        assert request.body.content == b'{"id":1,"name":"ann"}'
        assert request.headers.get("Content-Type").startswith("application/json")

    def test_none_body_is_rejected(self, client):
        with pytest.raises(ArgumentError, match="parameter #1: user"):
            build(client, GroupApi, "create_user", None)

    def test_body_method_without_body_sends_empty_body(self, client):
        request = build(client, GroupApi, "ping")
        assert request.body is not None
        assert request.body.content == b""
        assert "Content-Type" not in request.headers

    def test_form_fields(self, client):
        request = build(client, FormApi, "login", "a b", "p&w")
        assert request.body.content == b"user=a+b&pass=p%26w"
        assert request.body.content_type == "application/x-www-form-urlencoded"

    def test_encoded_form_field(self, client):
        request = build(client, FormApi, "login_encoded", "a%20b")
        assert request.body.content == b"token=a%20b"

    def test_field_map(self, client):
        request = build(client, FormApi, "login_map", {"a": "1", "b": "x y"})
        assert request.body.content == b"a=1&b=x+y"

    def test_multipart_parts(self, transport):
        client = RestClient(
            base_url=BASE_URL,
            transport=transport,
            converter_factories=[ScalarsConverterFactory(), PydanticConverterFactory()],
        )
        request = build(client, UploadApi, "upload", "hello", b"\x00\x01")
        body = request.body
        assert body.content_type.startswith("multipart/form-data; boundary=")
        boundary = body.content_type.split("boundary=")[1]
        content = body.content
        assert content.startswith(f"--{boundary}\r\n".encode())
        assert content.endswith(f"--{boundary}--\r\n".encode())
        assert b'Content-Disposition: form-data; name="description"' in content
        assert b'name="file"; filename="a.txt"' in content
        assert b"Content-Transfer-Encoding: binary" in content
        assert b"\r\n\r\nhello\r\n" in content
        assert b"\r\n\r\n\x00\x01\r\n" in content

    def test_raw_multipart_parts(self, client):
        part = MultipartPart.form_data("note", "hi", content_type="text/plain")
        request = build(client, UploadApi, "upload_raw", [part])
        assert b'name="note"' in request.body.content
        assert b"Content-Type: text/plain" in request.body.content

    def test_part_map(self, client):
        request = build(client, UploadApi, "upload_map", {"a": b"1", "b": b"2"})
        assert b'name="a"' in request.body.content
        assert b'name="b"' in request.body.content


class TestTags:
    def test_invocation_tag_is_always_present(self, client):
        request = build(client, GroupApi, "group_users", 42, sort="desc")
        invocation = request.tag(Invocation)
        assert invocation.service is GroupApi
        assert invocation.method == "group_users"
        assert invocation.arguments == (42, "desc")

    def test_tag_keyed_by_declared_type(self, client):
        request = build(client, GroupApi, "traced", TraceId("t-1"))
        assert request.tag(TraceId) == "t-1"

    def test_none_tag_is_absent(self, client):
        request = build(client, GroupApi, "traced")
        assert request.tag(TraceId) is None


class TestDescribe:
    def test_async_def_wraps_return_type(self):
        desc = describe(GroupApi, "get_user", GroupApi.get_user)
        assert desc.return_type == Awaitable[User]

    def test_marker_defaults_are_removed_from_signature(self):
        desc = describe(GroupApi, "group_users_by_default", GroupApi.group_users_by_default)
        assert [p.default for p in desc.signature.parameters.values()] == [
            inspect.Parameter.empty,
            inspect.Parameter.empty,
        ]

    def test_undecorated_method_is_rejected(self):
        with pytest.raises(InvalidMethodDefinition, match="HTTP method decorator"):
            describe(BrokenApi, "undecorated", BrokenApi.undecorated)

    def test_two_verbs_are_rejected(self):
        with pytest.raises(InvalidMethodDefinition, match="Only one HTTP method"):

            class _Api:
                @GET("a")
                @POST("a")
                def both(self) -> Call[ResponseBody]: ...

    def test_multipart_on_get_is_rejected(self):
        class _Api:
            @GET("a")
            @multipart
            def bad(self) -> Call[ResponseBody]: ...

        with pytest.raises(InvalidMethodDefinition, match="request body"):
            describe(_Api, "bad", _Api.bad)

    def test_unresolvable_hint_is_rejected(self, client):
        with pytest.raises(InvalidMethodDefinition, match="type hints"):
            compile_method(client, BrokenApi, "unresolvable_hint")


class TestConfigurationErrors:
    @pytest.mark.parametrize(
        "name,error",
        [
            ("missing_placeholder", MissingPathPlaceholder),
            ("unresolved_placeholder", UnresolvedPathPlaceholder),
            ("duplicate_placeholder", DuplicatePathPlaceholder),
            ("placeholder_in_query", InvalidMethodDefinition),
            ("body_with_form", UnexpectedFormField),
            ("body_with_multipart", UnexpectedPart),
            ("field_without_form", UnexpectedFormField),
            ("part_without_multipart", UnexpectedPart),
            ("two_bodies", MultipleBodyParams),
            ("body_on_get", InvalidMethodDefinition),
            ("two_urls", AmbiguousUrlParam),
            ("url_with_path", InvalidMethodDefinition),
            ("no_url", InvalidMethodDefinition),
            ("no_role", InvalidMethodDefinition),
            ("variadic", InvalidMethodDefinition),
            ("empty_form", InvalidMethodDefinition),
            ("empty_multipart", InvalidMethodDefinition),
            ("malformed_header", MalformedHeader),
            ("no_adapter", NoCallAdapterFound),
            ("bare_call", NoCallAdapterFound),
            ("head_with_body", InvalidMethodDefinition),
            ("response_as_body", InvalidMethodDefinition),
            ("named_raw_part", InvalidMethodDefinition),
        ],
    )
    def test_error_names_method(self, client, name, error):
        with pytest.raises(error) as exc_info:
            compile_method(client, BrokenApi, name)
        assert f"for method BrokenApi.{name}" in str(exc_info.value)
        assert exc_info.value.details["method"] == f"BrokenApi.{name}"

    def test_error_names_parameter(self, client):
        with pytest.raises(MissingPathPlaceholder) as exc_info:
            compile_method(client, BrokenApi, "missing_placeholder")
        assert "(parameter #1: id)" in str(exc_info.value)

    def test_body_with_form_never_reaches_network(self, client, transport):
        api = client.create(BrokenApi)
        with pytest.raises(UnexpectedFormField):
            api.body_with_form("x", User(id=1, name="a"))
        assert transport.requests == []

    def test_missing_response_converter(self, transport):
        client = RestClient(base_url=BASE_URL, transport=transport)
        with pytest.raises(NoConverterFound, match="response converter"):
            compile_method(client, GroupApi, "group_users")

    def test_failed_compile_is_not_cached(self, client):
        for _ in range(2):
            with pytest.raises(MissingPathPlaceholder):
                compile_method(client, BrokenApi, "missing_placeholder")

    def test_head_with_none_compiles(self, client):
        template = compile_method(client, GroupApi, "head_users")
        assert template.http_method == "HEAD"
        assert template.response_type in (None, type(None))


class TestDeterminism:
    def test_same_descriptor_binds_identically(self, client):
        desc = describe(GroupApi, "group_users", GroupApi.group_users)
        first = compile_template(desc, client)
        second = compile_template(desc, client)
        arguments = (42, "desc")
        assert first.build(arguments) == second.build(arguments)

    def test_template_is_cached_per_method(self, client):
        first = compile_method(client, GroupApi, "group_users")
        second = compile_method(client, GroupApi, "group_users")
        assert first is second
