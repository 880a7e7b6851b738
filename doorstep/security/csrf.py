"""
CSRF Guard - session-bound token validation for state-changing requests.

Protection Flow:
    1. ``attach_token_issuer`` gives the request a ``csrf_token()`` callable.
       Each call mints a fresh token from the session secret, creating the
       secret on first use.
    2. ``validate`` classifies the request. Safe methods (GET, HEAD, OPTIONS)
       and ignored paths are accepted without looking at any token.
    3. For everything else the candidate token is taken from the first
       non-blank of: ``csrf-token`` header, ``x-csrf-token`` header, the
       ``xsrf`` header aliases, the ``_csrf`` body field, and the ``_csrf``
       query parameter.
    4. The token's digest is recomputed from its salt and the session secret
       and compared in constant time.

An ``Authorization`` header never exempts a request: bearer credentials and
cookie-bound sessions are separate concerns.

The guard never writes HTTP responses. Rejections are reported as faults
(``EBADCSRFTOKEN``, 403) and a missing session as ``SessionMissingFault``
(500); the host maps them with ``doorstep.faults.fault_to_response``.

Example::

    guard = CSRFGuard(CSRFConfig(ignore_paths=frozenset({"/api/track"})))

    def middleware(request, session, next):
        return guard.dispatch(request, session, next)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)

from doorstep.config import SAFE_METHODS, CSRFConfig
from doorstep.faults import (
    Fault,
    MalformedTokenFault,
    MismatchedTokenFault,
    MissingTokenFault,
    SessionMissingFault,
    log_fault,
)
from doorstep.security.tokens import (
    create_token,
    generate_secret,
    parse_token,
    verify_token,
)


logger = logging.getLogger("doorstep.security.csrf")

Session = MutableMapping[str, Any]
TokenIssuer = Callable[[], str]


# ============================================================================
# Request view
# ============================================================================

@dataclass
class CSRFRequest:
    """
    The parts of an HTTP request the guard reads.

    ``headers`` is any mapping with lower-case names whose values are a
    string or a list of strings; objects exposing ``get_all(name)`` (such as
    ``doorstep._datastructures.Headers``) are also accepted. ``body`` is the
    already-parsed body mapping, if any.
    """
    method: Optional[str] = "GET"
    path: str = "/"
    headers: Any = field(default_factory=dict)
    body: Optional[Mapping[str, Any]] = None
    query: Optional[Mapping[str, Any]] = None
    csrf_token: Optional[TokenIssuer] = None


# ============================================================================
# Validation outcome
# ============================================================================

class RejectReason(str, Enum):
    MISSING_TOKEN = "missing-token"
    MALFORMED_TOKEN = "malformed-token"
    MISMATCHED_TOKEN = "mismatched-token"
    MISSING_SESSION = "missing-session"


_REASON_FAULTS = {
    RejectReason.MISSING_TOKEN: MissingTokenFault,
    RejectReason.MALFORMED_TOKEN: MalformedTokenFault,
    RejectReason.MISMATCHED_TOKEN: MismatchedTokenFault,
    RejectReason.MISSING_SESSION: SessionMissingFault,
}


@dataclass(frozen=True, slots=True)
class Accepted:
    """The request may proceed."""

    accepted = True

    def to_fault(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class Rejected:
    """The request must not reach its handler."""

    reason: RejectReason
    accepted = False

    def to_fault(self) -> Fault:
        return _REASON_FAULTS[self.reason]()


ValidationOutcome = Union[Accepted, Rejected]

ACCEPTED = Accepted()


# ============================================================================
# Guard
# ============================================================================

def _first_non_blank(value: Any) -> Optional[str]:
    """Return the first non-blank string in ``value``, stripped."""
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str) and item.strip():
                return item.strip()
    return None


def _all_values(source: Any, name: str) -> Any:
    """Every value under ``name``; multi-value containers expose ``get_all``."""
    if source is None:
        return None
    get_all = getattr(source, "get_all", None)
    if callable(get_all):
        return get_all(name)
    return source.get(name)


class CSRFGuard:
    """
    Session-bound CSRF gate.

    Stateless apart from the secret it keeps in each session. One guard can
    be shared by every request of an application.

    Args:
        config: Guard settings. Defaults to ``CSRFConfig()``.
    """

    def __init__(self, config: Optional[CSRFConfig] = None):
        self.config = config or CSRFConfig()
        self._exact_paths = frozenset(
            p for p in self.config.ignore_paths if not p.endswith("*")
        )
        self._prefix_paths = tuple(
            p[:-1] for p in self.config.ignore_paths if p.endswith("*")
        )

    # ========================================================================
    # Secret & token issuance
    # ========================================================================

    def ensure_secret(self, session: Session) -> str:
        """Return the session secret, minting it on first use."""
        key = self.config.session_key
        secret = session.get(key)
        if isinstance(secret, str) and secret:
            return secret

        candidate = generate_secret(self.config.secret_bytes)
        if key not in session:
            # A concurrent first writer on a shared mapping keeps its value
            secret = session.setdefault(key, candidate)
            if isinstance(secret, str) and secret:
                return secret

        session[key] = candidate
        return candidate

    def issue_token(self, session: Session) -> str:
        """Mint a fresh token for ``session``."""
        return create_token(self.ensure_secret(session), self.config.salt_bytes)

    def attach_token_issuer(self, request: Any, session: Optional[Session]) -> TokenIssuer:
        """
        Attach a ``csrf_token()`` callable to ``request``.

        Raises:
            SessionMissingFault: If ``session`` is None.
        """
        if session is None:
            fault = SessionMissingFault()
            self._report(fault, request)
            raise fault

        def csrf_token() -> str:
            return self.issue_token(session)

        request.csrf_token = csrf_token
        return csrf_token

    # ========================================================================
    # Classification
    # ========================================================================

    def is_safe_method(self, method: Optional[str]) -> bool:
        return (method or "GET").upper() in SAFE_METHODS

    def is_ignored_path(self, path: Optional[str]) -> bool:
        if path is None:
            return False
        if path in self._exact_paths:
            return True
        return any(path.startswith(prefix) for prefix in self._prefix_paths)

    def is_exempt(self, request: Any) -> bool:
        """Safe methods and ignored paths skip token validation."""
        return self.is_safe_method(getattr(request, "method", None)) or self.is_ignored_path(
            getattr(request, "path", None)
        )

    # ========================================================================
    # Token extraction
    # ========================================================================

    def extract_header_token(self, request: Any) -> Optional[str]:
        headers = getattr(request, "headers", None)
        for name in self.config.header_names:
            token = _first_non_blank(_all_values(headers, name))
            if token:
                return token
        return None

    def extract_token(self, request: Any) -> Optional[str]:
        """
        Find the candidate token.

        Checks in order:
        1. Configured headers
        2. Body field (``_csrf``)
        3. Query parameter (``_csrf``), when enabled
        """
        token = self.extract_header_token(request)
        if token:
            return token

        field_name = self.config.body_field
        body = getattr(request, "body", None)
        if isinstance(body, Mapping):
            token = _first_non_blank(_all_values(body, field_name))
            if token:
                return token

        if self.config.accept_query_token:
            query = getattr(request, "query", None)
            if isinstance(query, Mapping):
                token = _first_non_blank(_all_values(query, field_name))
                if token:
                    return token

        return None

    # ========================================================================
    # Validation
    # ========================================================================

    def validate(self, request: Any, session: Optional[Session]) -> ValidationOutcome:
        """Decide whether ``request`` may reach a state-changing handler."""
        if session is None:
            return self._reject(request, RejectReason.MISSING_SESSION)

        if self.is_exempt(request):
            return ACCEPTED

        candidate = self.extract_token(request)
        if candidate is None:
            return self._reject(request, RejectReason.MISSING_TOKEN)

        parsed = parse_token(candidate)
        if parsed is None:
            return self._reject(request, RejectReason.MALFORMED_TOKEN)

        if not verify_token(self.ensure_secret(session), parsed):
            return self._reject(request, RejectReason.MISMATCHED_TOKEN)

        return ACCEPTED

    def dispatch(
        self,
        request: Any,
        session: Optional[Session],
        next_handler: Callable[..., Any],
    ) -> Any:
        """
        Middleware-shaped entry point.

        Attaches the token issuer and validates. Calls ``next_handler()`` on
        acceptance or ``next_handler(fault)`` otherwise, and returns its
        result.
        """
        try:
            self.attach_token_issuer(request, session)
        except SessionMissingFault as fault:
            return next_handler(fault)

        outcome = self.validate(request, session)
        if isinstance(outcome, Rejected):
            return next_handler(outcome.to_fault())
        return next_handler()

    def enforce(self, request: Any, session: Optional[Session]) -> TokenIssuer:
        """
        Raise-style entry point.

        Returns the attached issuer on acceptance.

        Raises:
            SessionMissingFault: If ``session`` is None.
            CSRFTokenFault: If the request is rejected.
        """
        issuer = self.attach_token_issuer(request, session)
        outcome = self.validate(request, session)
        if isinstance(outcome, Rejected):
            raise outcome.to_fault()
        return issuer

    # ========================================================================
    # Reporting
    # ========================================================================

    def _reject(self, request: Any, reason: RejectReason) -> Rejected:
        outcome = Rejected(reason)
        self._report(outcome.to_fault(), request)
        return outcome

    def _report(self, fault: Fault, request: Any) -> None:
        log_fault(
            fault,
            log=logger,
            method=(getattr(request, "method", None) or "GET").upper(),
            path=getattr(request, "path", None),
        )


__all__ = [
    "ACCEPTED",
    "Accepted",
    "CSRFGuard",
    "CSRFRequest",
    "RejectReason",
    "Rejected",
    "TokenIssuer",
    "ValidationOutcome",
]
