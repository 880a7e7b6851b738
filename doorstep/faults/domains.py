"""
DoorStep faults - Domain-specific fault types.

Security faults raised by the CSRF guard, configuration faults raised when
the host application is mis-wired, and request faults raised while reading
request bodies.
"""

from __future__ import annotations

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# Configuration Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration and wiring faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status: int = 500,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            status=status,
            public=False,
            metadata=metadata,
        )


class SessionMissingFault(ConfigFault):
    """
    No session object is bound to the request.

    Raised when the session middleware is not mounted in front of the CSRF
    guard. This is a server misconfiguration, not attacker activity, and is
    surfaced as a 500.
    """

    def __init__(self, **kwargs):
        super().__init__(
            code="ECSRFSESSION",
            message="Session middleware must be mounted before CSRF protection middleware.",
            status=500,
            metadata=kwargs.get("metadata"),
        )


# ============================================================================
# Security Faults
# ============================================================================

class SecurityFault(Fault):
    """Base class for security faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        status: int = 403,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SECURITY,
            severity=severity,
            status=status,
            public=public,
            metadata=metadata,
        )


class CSRFTokenFault(SecurityFault):
    """
    CSRF token validation failed.

    All token rejections share the stable code ``EBADCSRFTOKEN`` and a 403
    status; ``reason`` tells them apart.
    """

    reason: str = "mismatched-token"
    default_message: str = "Invalid CSRF token"

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(
            code="EBADCSRFTOKEN",
            message=message or self.default_message,
            severity=Severity.WARN,
            status=403,
            public=True,
            metadata={"reason": self.reason, **kwargs.get("metadata", {})},
        )


class MissingTokenFault(CSRFTokenFault):
    """Unsafe request carried no candidate token."""

    reason = "missing-token"
    default_message = "Missing CSRF token"


class MalformedTokenFault(CSRFTokenFault):
    """Candidate token did not parse into salt and digest."""

    reason = "malformed-token"
    default_message = "Malformed CSRF token"


class MismatchedTokenFault(CSRFTokenFault):
    """Recomputed digest disagreed with the presented one."""

    reason = "mismatched-token"
    default_message = "Invalid CSRF token"


# ============================================================================
# Request Faults
# ============================================================================

class RequestFault(Fault):
    """Base class for request-related faults."""
    domain = FaultDomain.IO
    severity = Severity.WARN
    status = 400


class InvalidBody(RequestFault):
    """Request body could not be decoded as JSON or form data."""

    code = "INVALID_BODY"
    message = "Request body could not be parsed"

    def __init__(self, message: Optional[str] = None, **metadata):
        super().__init__(message=message, public=True, metadata=metadata)


class PayloadTooLarge(RequestFault):
    """Request body exceeds the configured size limit."""

    code = "PAYLOAD_TOO_LARGE"
    message = "Request payload too large"
    status = 413

    def __init__(self, message: Optional[str] = None, **metadata):
        super().__init__(message=message, public=True, metadata=metadata)


__all__ = [
    "ConfigFault",
    "SessionMissingFault",
    "SecurityFault",
    "CSRFTokenFault",
    "MissingTokenFault",
    "MalformedTokenFault",
    "MismatchedTokenFault",
    "RequestFault",
    "InvalidBody",
    "PayloadTooLarge",
]
