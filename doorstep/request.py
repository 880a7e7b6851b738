"""
Request - Thin ASGI request wrapper.

Provides:
- Method, path, header and query access over an ASGI scope
- Idempotent body caching with a size limit
- JSON and urlencoded form parsing
- Body replay so a wrapped app can read the body again
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from ._datastructures import Headers, MultiDict, ParsedContentType
from .faults import InvalidBody, PayloadTooLarge


Receive = Callable[[], Awaitable[Dict[str, Any]]]


class Request:
    """
    Request object over an ASGI HTTP scope.

    Args:
        scope: ASGI scope dict
        receive: ASGI receive callable
        max_body_size: Maximum request body size in bytes
        json_max_depth: Maximum JSON nesting depth
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Receive,
        *,
        max_body_size: int = 1_048_576,  # 1 MiB
        json_max_depth: int = 64,
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size
        self.json_max_depth = json_max_depth

        self._body: Optional[bytes] = None
        self._headers: Optional[Headers] = None
        self._query_params: Optional[MultiDict] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method, upper-cased. A missing method counts as GET."""
        return (self.scope.get("method") or "GET").upper()

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def query_params(self) -> MultiDict:
        if self._query_params is None:
            self._query_params = MultiDict(parse_qsl(self.query_string, keep_blank_values=True))
        return self._query_params

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name, default)

    def content_type(self) -> Optional[ParsedContentType]:
        return ParsedContentType.parse(self.header("content-type"))

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            PayloadTooLarge: If body exceeds max_body_size
        """
        if self._body is not None:
            return self._body

        chunks = []
        total_size = 0
        more_body = True
        while more_body:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            total_size += len(chunk)
            if total_size > self.max_body_size:
                raise PayloadTooLarge(
                    max_allowed=self.max_body_size,
                    actual=total_size,
                )
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        Raises:
            InvalidBody: If JSON is malformed or nested too deeply
        """
        body_bytes = await self.body()
        try:
            data = stdlib_json.loads(body_bytes.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise InvalidBody(f"Invalid UTF-8 in JSON payload: {e}")
        except stdlib_json.JSONDecodeError as e:
            raise InvalidBody(f"Invalid JSON: {e}")
        except RecursionError:
            raise InvalidBody("JSON nesting exceeds maximum depth", max_depth=self.json_max_depth)

        if not self._check_json_depth(data, self.json_max_depth):
            raise InvalidBody("JSON nesting exceeds maximum depth", max_depth=self.json_max_depth)

        return data

    def _check_json_depth(self, obj: Any, max_depth: int, current_depth: int = 0) -> bool:
        """Check if JSON nesting depth is within limits."""
        if current_depth > max_depth:
            return False

        if isinstance(obj, dict):
            for value in obj.values():
                if not self._check_json_depth(value, max_depth, current_depth + 1):
                    return False
        elif isinstance(obj, list):
            for item in obj:
                if not self._check_json_depth(item, max_depth, current_depth + 1):
                    return False

        return True

    async def form(self) -> MultiDict:
        """Parse application/x-www-form-urlencoded form data."""
        ct = self.content_type()
        charset = ct.charset if ct else "utf-8"
        body_bytes = await self.body()
        try:
            body_str = body_bytes.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            raise InvalidBody(f"Invalid form encoding: {e}")
        return MultiDict(parse_qsl(body_str, keep_blank_values=True))

    async def parsed_body(self) -> Optional[Mapping[str, Any]]:
        """
        Parse the body according to its Content-Type.

        Returns a mapping for JSON objects and urlencoded forms, None for
        anything else.
        """
        ct = self.content_type()
        if ct is None:
            return None

        if ct.media_type == "application/json" or ct.media_type.endswith("+json"):
            data = await self.json()
            return data if isinstance(data, dict) else None

        if ct.media_type == "application/x-www-form-urlencoded":
            return await self.form()

        return None

    def replay_receive(self) -> Receive:
        """
        Receive callable for the wrapped app.

        Replays the cached body once, then defers to the original receive
        (which yields ``http.disconnect`` when the client goes away).
        """
        if self._body is None:
            return self._receive

        body = self._body
        sent = False

        async def receive() -> Dict[str, Any]:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await self._receive()

        return receive
