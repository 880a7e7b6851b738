"""
ASGI integration for the CSRF guard.

- CSRFMiddleware:     runs the guard in front of a wrapped ASGI app
- CSRFTokenEndpoint:  serves ``{"csrfToken": ...}`` for clients to echo back
- with_token_endpoint: mounts the endpoint at a path in front of an app

The session is read from ``scope["session"]``, the slot ASGI session
middlewares populate. The token issuer is published as
``scope["state"]["csrf_token"]`` for handlers and templates.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from doorstep.config import CSRFConfig
from doorstep.faults import (
    Fault,
    InvalidBody,
    PayloadTooLarge,
    SessionMissingFault,
    fault_to_response,
    log_fault,
)
from doorstep.request import Request
from doorstep.response import JSONResponse
from doorstep.security.csrf import CSRFGuard, CSRFRequest, Rejected


logger = logging.getLogger("doorstep.security.middleware")

ASGIApp = Callable[[Dict[str, Any], Callable, Callable], Awaitable[None]]

DEFAULT_TOKEN_PATH = "/api/csrf-token"


async def send_fault(fault: Fault, send: Callable) -> None:
    """Send the mapped JSON response for ``fault``."""
    mapped = fault_to_response(fault)
    response = JSONResponse(mapped.body, status=mapped.status_code, headers=mapped.headers)
    await response.send_asgi(send)


def _with_state(scope: Dict[str, Any], **values: Any) -> Dict[str, Any]:
    scope = dict(scope)
    state = dict(scope.get("state") or {})
    state.update(values)
    scope["state"] = state
    return scope


class CSRFMiddleware:
    """
    ASGI middleware gating state-changing requests.

    Flow:
    1. Attach the token issuer (500 when no session is bound)
    2. For protected requests without a header token, read and parse the
       body to look for the ``_csrf`` field
    3. Validate; on rejection answer 403 without calling the wrapped app
    4. Call the wrapped app with the body replayed

    Args:
        app: Wrapped ASGI application.
        guard: Guard instance. Built from ``config`` when omitted.
        config: Guard settings used when ``guard`` is omitted.
        max_body_size: Largest body read while looking for a token.

    Example::

        app = SessionMiddleware(CSRFMiddleware(api, config=CSRFConfig(
            ignore_paths=frozenset({"/api/track"}),
        )))
    """

    def __init__(
        self,
        app: ASGIApp,
        guard: Optional[CSRFGuard] = None,
        *,
        config: Optional[CSRFConfig] = None,
        max_body_size: int = 1_048_576,
    ):
        self.app = app
        self.guard = guard or CSRFGuard(config)
        self.max_body_size = max_body_size

    async def __call__(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive, max_body_size=self.max_body_size)
        session = scope.get("session")
        view = CSRFRequest(
            method=request.method,
            path=request.path,
            headers=request.headers,
            query=request.query_params,
        )

        try:
            issuer = self.guard.attach_token_issuer(view, session)
        except SessionMissingFault as fault:
            await send_fault(fault, send)
            return

        if not self.guard.is_exempt(view) and self.guard.extract_header_token(view) is None:
            try:
                view.body = await self._read_body(request)
            except PayloadTooLarge as fault:
                log_fault(fault, log=logger, path=view.path)
                await send_fault(fault, send)
                return

        outcome = self.guard.validate(view, session)
        if isinstance(outcome, Rejected):
            await send_fault(outcome.to_fault(), send)
            return

        await self.app(_with_state(scope, csrf_token=issuer), request.replay_receive(), send)

    async def _read_body(self, request: Request):
        try:
            return await request.parsed_body()
        except InvalidBody as fault:
            # An unreadable body carries no token
            logger.debug("Ignoring unparsable body on %s: %s", request.path, fault.message)
            return None


class CSRFTokenEndpoint:
    """
    ASGI endpoint returning a fresh token: ``{"csrfToken": "<token>"}``.

    Uses the issuer published by ``CSRFMiddleware`` when present, otherwise
    attaches one itself from ``scope["session"]``.
    """

    def __init__(self, guard: Optional[CSRFGuard] = None, *, config: Optional[CSRFConfig] = None):
        self.guard = guard or CSRFGuard(config)

    async def __call__(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        method = (scope.get("method") or "GET").upper()
        if method not in ("GET", "HEAD"):
            response = JSONResponse(
                {"message": "Method not allowed"},
                status=405,
                headers={"allow": "GET, HEAD"},
            )
            await response.send_asgi(send)
            return

        issuer = (scope.get("state") or {}).get("csrf_token")
        if issuer is None:
            view = CSRFRequest(method=method, path=scope.get("path", "/"))
            try:
                issuer = self.guard.attach_token_issuer(view, scope.get("session"))
            except SessionMissingFault as fault:
                await send_fault(fault, send)
                return

        await JSONResponse({"csrfToken": issuer()}).send_asgi(send)


def with_token_endpoint(
    app: ASGIApp,
    endpoint: Optional[CSRFTokenEndpoint] = None,
    *,
    path: str = DEFAULT_TOKEN_PATH,
) -> ASGIApp:
    """Serve ``endpoint`` at ``path`` and everything else from ``app``."""
    endpoint = endpoint or CSRFTokenEndpoint()

    async def router(scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        if scope["type"] == "http" and scope.get("path") == path:
            await endpoint(scope, receive, send)
        else:
            await app(scope, receive, send)

    return router


__all__ = [
    "CSRFMiddleware",
    "CSRFTokenEndpoint",
    "DEFAULT_TOKEN_PATH",
    "send_fault",
    "with_token_endpoint",
]
