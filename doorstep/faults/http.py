"""
DoorStep faults - HTTP mapping and logging.

The CSRF guard never writes responses itself. Hosts turn a fault into a
response with ``fault_to_response`` and report it with ``log_fault``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .core import Fault, Severity
from .domains import CSRFTokenFault


logger = logging.getLogger("doorstep.faults")

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


@dataclass(frozen=True, slots=True)
class HTTPResponse:
    """HTTP response representation."""
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


def fault_to_response(fault: Fault) -> HTTPResponse:
    """
    Map a fault to an HTTP response.

    - CSRF token faults → 403 with the stable ``EBADCSRFTOKEN`` code and
      the rejection reason.
    - Other public faults → their status with code and message.
    - Private faults (misconfiguration) → their status with a generic
      message, so wiring details never reach the client.
    """
    headers = {"x-fault-code": fault.code}

    if isinstance(fault, CSRFTokenFault):
        body = {
            "message": "Invalid or missing CSRF token",
            "code": fault.code,
            "reason": fault.reason,
        }
    elif fault.public:
        body = {"message": fault.message, "code": fault.code}
    else:
        body = {"message": "Internal server error", "code": fault.code}

    return HTTPResponse(status_code=fault.status, body=body, headers=headers)


def log_fault(
    fault: Fault,
    *,
    log: Optional[logging.Logger] = None,
    **context: Any,
) -> None:
    """Log a fault at the level matching its severity."""
    target = log or logger
    target.log(
        _LOG_LEVELS[fault.severity],
        "[%s] %s: %s",
        fault.domain.value,
        fault.code,
        fault.message,
        extra={"fault": fault.to_dict(), **context},
    )
