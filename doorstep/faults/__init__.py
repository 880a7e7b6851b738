"""
DoorStep faults - typed fault signals.

Errors are values with a stable code, a domain, a severity and an HTTP
status hint. The CSRF guard raises or reports them; hosts map them to
responses.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    SessionMissingFault,
    SecurityFault,
    CSRFTokenFault,
    MissingTokenFault,
    MalformedTokenFault,
    MismatchedTokenFault,
    RequestFault,
    InvalidBody,
    PayloadTooLarge,
)

from .http import (
    HTTPResponse,
    fault_to_response,
    log_fault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",
    # Domains
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
    # HTTP mapping
    "HTTPResponse",
    "fault_to_response",
    "log_fault",
]
