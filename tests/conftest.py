"""
Shared test fixtures and helpers for the DoorStep test suite.
"""

from typing import Any, Dict, List, Optional

import pytest

from doorstep.request import Request
from doorstep.security.csrf import CSRFGuard, CSRFRequest


# ============================================================================
# ASGI Helpers
# ============================================================================


def make_scope(
    method: Optional[str] = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    session: Optional[Dict[str, Any]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    if headers:
        for name, value in headers:
            raw_headers.append(
                (name.encode("latin-1") if isinstance(name, str) else name,
                 value.encode("latin-1") if isinstance(value, str) else value)
            )
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": ("127.0.0.1", 12345),
        "root_path": "",
    }
    if session is not None:
        scope["session"] = session
    return scope


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or chunked list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_asgi_request(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    **kwargs,
) -> Request:
    """Build a full Request object for testing."""
    scope = make_scope(method=method, path=path, query_string=query_string, headers=headers)
    return Request(scope, make_receive(body), **kwargs)


class SendCollector:
    """ASGI send callable recording every message."""

    def __init__(self):
        self.messages: List[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def status(self) -> Optional[int]:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message["status"]
        return None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )

    @property
    def headers(self) -> Dict[str, str]:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return {k.decode("latin-1"): v.decode("latin-1") for k, v in message["headers"]}
        return {}


# ============================================================================
# Guard Fixtures
# ============================================================================


@pytest.fixture
def guard() -> CSRFGuard:
    return CSRFGuard()


@pytest.fixture
def session() -> Dict[str, Any]:
    return {}


def mint_token(guard: CSRFGuard, session: Dict[str, Any]) -> str:
    """Issue a token the way a page render would: GET, then call the issuer."""
    request = CSRFRequest(method="GET", path="/")
    guard.attach_token_issuer(request, session)
    return request.csrf_token()
