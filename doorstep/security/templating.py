"""
Jinja2 helpers for embedding CSRF tokens in rendered pages.

Usage::

    env = Environment(autoescape=True)
    install_csrf_helpers(env)

    # In templates (``request`` must be in the render context):
    # <form method="post">{{ csrf_input() }} ... </form>
    # <meta name="csrf-token" content="{{ csrf_token() }}">
"""

from __future__ import annotations

from typing import Any, Optional

from jinja2 import Environment, pass_context
from jinja2.runtime import Context
from markupsafe import Markup, escape


def _issuer_for(request: Any):
    issuer = getattr(request, "csrf_token", None)
    if issuer is None and isinstance(request, dict):
        # ASGI scope: the middleware publishes the issuer in scope["state"]
        issuer = (request.get("state") or {}).get("csrf_token")
    return issuer


def csrf_token_for(request: Any) -> str:
    """Fresh token for ``request``, or an empty string if none is attached."""
    issuer = _issuer_for(request)
    return issuer() if issuer is not None else ""


def csrf_input(request: Any, field_name: str = "_csrf") -> Markup:
    """Hidden form input carrying a fresh token."""
    token = csrf_token_for(request)
    return Markup('<input type="hidden" name="{}" value="{}">').format(
        escape(field_name), escape(token)
    )


def install_csrf_helpers(env: Environment, field_name: Optional[str] = None) -> Environment:
    """Register ``csrf_token()`` and ``csrf_input()`` as template globals."""
    name = field_name or "_csrf"

    @pass_context
    def _csrf_token(context: Context) -> str:
        return csrf_token_for(context.get("request"))

    @pass_context
    def _csrf_input(context: Context) -> Markup:
        return csrf_input(context.get("request"), name)

    env.globals["csrf_token"] = _csrf_token
    env.globals["csrf_input"] = _csrf_input
    return env


__all__ = ["csrf_input", "csrf_token_for", "install_csrf_helpers"]
