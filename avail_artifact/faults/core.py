"""
Artifact faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
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

    Determines the logging level a caller should use when reporting it.
    """
    INFO = "info"       # Informational, no action needed
    WARN = "warn"       # Consistency finding, should be reviewed
    ERROR = "error"     # Operation failed
    FATAL = "fatal"     # Container unusable, abort


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
FaultDomain.CONFIG = FaultDomain("config", "Settings errors")
FaultDomain.IO = FaultDomain("io", "I/O operations")
FaultDomain.BUILD = FaultDomain("artifact.build", "Input errors while assembling a container")
FaultDomain.FORMAT = FaultDomain("artifact.format", "Unparsable or unknown-version records")
FaultDomain.INTEGRITY = FaultDomain("artifact.integrity", "Digest and consistency findings")


# Domain defaults
DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL},
    FaultDomain.IO: {"severity": Severity.ERROR},
    FaultDomain.BUILD: {"severity": Severity.ERROR},
    FaultDomain.FORMAT: {"severity": Severity.FATAL},
    FaultDomain.INTEGRITY: {"severity": Severity.WARN},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    A fault is NOT a bare exception. It carries:
    - Stable machine-readable code
    - Human-readable message
    - Severity level
    - Domain classification
    - Retry semantics (the artifact core never retries on its own)
    - Context metadata (paths, versions, root names)

    Example:
        ```python
        raise Fault(
            code="ENTRY_NOT_FOUND",
            message="Entry 'x' not found in lib.jar",
            domain=FaultDomain.FORMAT,
            metadata={"entry": "x"},
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
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fallback to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": {k: v for k, v in self.metadata.items() if not k.startswith("_")},
        }
