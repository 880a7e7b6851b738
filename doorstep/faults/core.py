"""
DoorStep faults - Core types and fault taxonomy.

Defines:
- Severity levels
- FaultDomain (explicit fault domains)
- Fault base class (structured fault objects carrying an HTTP status hint)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level a fault is reported at.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Warning, should be reviewed
    ERROR = "error"     # Error, immediate attention
    FATAL = "fatal"     # Misconfiguration, deployment is broken


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration and wiring errors")
FaultDomain.IO = FaultDomain("io", "Request I/O and parsing")
FaultDomain.SECURITY = FaultDomain("security", "Security checks")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "status": 500},
    FaultDomain.IO: {"severity": Severity.WARN, "status": 400},
    FaultDomain.SECURITY: {"severity": Severity.ERROR, "status": 403},
    FaultDomain.SYSTEM: {"severity": Severity.FATAL, "status": 500},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault is a first-class value with:
    - Stable machine-readable code
    - Human-readable message
    - Severity level and domain classification
    - HTTP status hint for the host framework
    - Public exposure control

    Subclasses may declare ``code``, ``message``, ``domain`` and ``status``
    as class attributes instead of passing them.

    Example:
        ```python
        raise Fault(
            code="ECSRFSESSION",
            message="Session middleware is not mounted",
            domain=FaultDomain.CONFIG,
            status=500,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        status: Optional[int] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "status": 500})
        self.severity = severity or getattr(type(self), "severity", None) or defaults["severity"]
        self.status = status or getattr(type(self), "status", None) or defaults["status"]

        # CSRF and config faults are never transient
        self.retryable = False
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, status={self.status}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "status": self.status,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }
