"""
DoorStep security - CSRF protection.

- tokens:      secret and token primitives
- csrf:        CSRFGuard (issue, validate, dispatch, enforce)
- middleware:  ASGI middleware and token endpoint
- templating:  Jinja2 form helpers
"""

from .csrf import (
    ACCEPTED,
    Accepted,
    CSRFGuard,
    CSRFRequest,
    RejectReason,
    Rejected,
    ValidationOutcome,
)
from .middleware import (
    CSRFMiddleware,
    CSRFTokenEndpoint,
    DEFAULT_TOKEN_PATH,
    with_token_endpoint,
)
from .tokens import (
    TOKEN_SEPARATOR,
    create_token,
    generate_secret,
    parse_token,
    verify_token,
)
from .templating import csrf_input, install_csrf_helpers

__all__ = [
    "ACCEPTED",
    "Accepted",
    "CSRFGuard",
    "CSRFRequest",
    "RejectReason",
    "Rejected",
    "ValidationOutcome",
    "CSRFMiddleware",
    "CSRFTokenEndpoint",
    "DEFAULT_TOKEN_PATH",
    "with_token_endpoint",
    "TOKEN_SEPARATOR",
    "create_token",
    "generate_secret",
    "parse_token",
    "verify_token",
    "csrf_input",
    "install_csrf_helpers",
]
