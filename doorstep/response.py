"""
Response - Minimal JSON response for ASGI.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import orjson


Send = Callable[[Dict[str, Any]], Awaitable[None]]


class JSONResponse:
    """
    JSON response sent over ASGI.

    Args:
        content: JSON-serializable object
        status: HTTP status code
        headers: Extra response headers
    """

    media_type = "application/json; charset=utf-8"

    def __init__(
        self,
        content: Any,
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self.status = status
        self.body = orjson.dumps(content)
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.headers["content-type"] = self.media_type
        self.headers["content-length"] = str(len(self.body))
        self.headers.setdefault("cache-control", "no-store")

    def _prepare_headers(self) -> list:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers.items()
        ]

    async def send_asgi(self, send: Send) -> None:
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({"type": "http.response.body", "body": self.body})
