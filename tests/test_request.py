"""
Tests for the ASGI Request wrapper and data structures.
"""

import pytest

from doorstep._datastructures import Headers, MultiDict, ParsedContentType
from doorstep.faults import InvalidBody, PayloadTooLarge
from doorstep.request import Request
from tests.conftest import make_asgi_request, make_receive, make_scope


class TestDatastructures:

    def test_headers_case_insensitive_multi_value(self):
        headers = Headers(raw=[(b"X-CSRF-Token", b"a"), (b"x-csrf-token", b"b")])
        assert headers.get("x-csrf-token") == "a"
        assert headers.get_all("X-Csrf-Token") == ["a", "b"]
        assert "X-CSRF-TOKEN" in headers
        assert headers.get("missing", "d") == "d"

    def test_multidict(self):
        md = MultiDict([("a", "1"), ("a", "2"), ("b", "3")])
        assert md.get("a") == "1"
        assert md.get_all("a") == ["1", "2"]
        assert md["b"] == "3"
        assert md.get("missing", "d") == "d"
        assert md.get_all("missing") == []
        assert dict(md) == {"a": "1", "b": "3"}

    def test_content_type_parse(self):
        ct = ParsedContentType.parse("application/x-www-form-urlencoded; charset=ISO-8859-1")
        assert ct.media_type == "application/x-www-form-urlencoded"
        assert ct.charset == "ISO-8859-1"
        assert ParsedContentType.parse(None) is None


class TestRequest:

    def test_basic_properties(self):
        request = make_asgi_request(method="post", path="/api/orders", query_string="_csrf=x")
        assert request.method == "POST"
        assert request.path == "/api/orders"
        assert request.query_params.get("_csrf") == "x"

    def test_missing_method_is_get(self):
        request = Request(make_scope(method=None), make_receive())
        assert request.method == "GET"

    @pytest.mark.asyncio
    async def test_body_is_cached(self):
        request = Request(make_scope(method="POST"), make_receive(chunks=[b"ab", b"cd"]))
        assert await request.body() == b"abcd"
        assert await request.body() == b"abcd"

    @pytest.mark.asyncio
    async def test_body_limit(self):
        request = make_asgi_request(method="POST", body=b"x" * 10, max_body_size=5)
        with pytest.raises(PayloadTooLarge):
            await request.body()

    @pytest.mark.asyncio
    async def test_parsed_json_object(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/json")],
            body=b'{"_csrf": "t"}',
        )
        assert await request.parsed_body() == {"_csrf": "t"}

    @pytest.mark.asyncio
    async def test_parsed_json_array_is_none(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/json")],
            body=b"[1, 2]",
        )
        assert await request.parsed_body() is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/json")],
            body=b"{oops",
        )
        with pytest.raises(InvalidBody):
            await request.parsed_body()

    @pytest.mark.asyncio
    async def test_json_beyond_depth_limit(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/json")],
            body=b"[" * 5 + b"]" * 5,
            json_max_depth=3,
        )
        with pytest.raises(InvalidBody):
            await request.json()

    @pytest.mark.asyncio
    async def test_json_nesting_past_recursion_limit(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/json")],
            body=b"[" * 200_000 + b"]" * 200_000,
        )
        with pytest.raises(InvalidBody):
            await request.parsed_body()

    @pytest.mark.asyncio
    async def test_parsed_form(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "application/x-www-form-urlencoded")],
            body=b"_csrf=abc&qty=2",
        )
        form = await request.parsed_body()
        assert form.get("_csrf") == "abc"

    @pytest.mark.asyncio
    async def test_other_content_type_is_none(self):
        request = make_asgi_request(
            method="POST",
            headers=[("content-type", "text/plain")],
            body=b"_csrf=abc",
        )
        assert await request.parsed_body() is None

    @pytest.mark.asyncio
    async def test_replay_receive(self):
        request = make_asgi_request(method="POST", body=b"payload")
        await request.body()
        receive = request.replay_receive()
        first = await receive()
        assert first == {"type": "http.request", "body": b"payload", "more_body": False}
        assert (await receive())["type"] == "http.disconnect"

    @pytest.mark.asyncio
    async def test_replay_receive_without_read(self):
        request = make_asgi_request(method="POST", body=b"payload")
        receive = request.replay_receive()
        assert (await receive())["body"] == b"payload"
