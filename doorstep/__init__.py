"""
DoorStep - CSRF protection core for the DoorStepTN marketplace backend.

Integration of:
- Security: session-bound salted-hash CSRF tokens, guard and ASGI middleware
- Faults: typed fault signals with codes, severities and HTTP status hints
- Config: typed CSRF settings loaded from defaults, .env and environment
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .config import CSRFConfig, ConfigError, ConfigLoader, SAFE_METHODS
from .request import Request
from .response import JSONResponse

from ._datastructures import (
    MultiDict,
    Headers,
    ParsedContentType,
)

# ============================================================================
# Faults
# ============================================================================

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    SessionMissingFault,
    CSRFTokenFault,
    MissingTokenFault,
    MalformedTokenFault,
    MismatchedTokenFault,
    HTTPResponse,
    fault_to_response,
    log_fault,
)

# ============================================================================
# Security
# ============================================================================

from .security import (
    ACCEPTED,
    Accepted,
    CSRFGuard,
    CSRFRequest,
    RejectReason,
    Rejected,
    ValidationOutcome,
    CSRFMiddleware,
    CSRFTokenEndpoint,
    with_token_endpoint,
    csrf_input,
    install_csrf_helpers,
)

__all__ = [
    "__version__",
    # Core
    "CSRFConfig",
    "ConfigError",
    "ConfigLoader",
    "SAFE_METHODS",
    "Request",
    "JSONResponse",
    "MultiDict",
    "Headers",
    "ParsedContentType",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "SessionMissingFault",
    "CSRFTokenFault",
    "MissingTokenFault",
    "MalformedTokenFault",
    "MismatchedTokenFault",
    "HTTPResponse",
    "fault_to_response",
    "log_fault",
    # Security
    "ACCEPTED",
    "Accepted",
    "CSRFGuard",
    "CSRFRequest",
    "RejectReason",
    "Rejected",
    "ValidationOutcome",
    "CSRFMiddleware",
    "CSRFTokenEndpoint",
    "with_token_endpoint",
    "csrf_input",
    "install_csrf_helpers",
]
