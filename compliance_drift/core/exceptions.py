"""
Error taxonomy for the compliance drift engine.

Absence of signal (a finding without embedding or tags, an empty catalog, a
first scan without a baseline) is never an error; these classes cover the
conditions a caller has to act on.
"""

from typing import Optional


class ComplianceDriftError(Exception):
    """Base class for all engine errors."""


class DimensionMismatch(ComplianceDriftError, ValueError):
    """Raised when vectors of different dimensionality are compared."""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )


class ControlNotFound(ComplianceDriftError, LookupError):
    """Raised when a control id is not present in the catalog."""

    def __init__(self, control_id: str):
        self.control_id = control_id
        super().__init__(f"Control not found in catalog: {control_id}")


class InvalidConfig(ComplianceDriftError, ValueError):
    """Raised when matching or remediation configuration is rejected."""


class ProjectMismatch(ComplianceDriftError, ValueError):
    """Raised when scan summaries of different projects are compared."""

    def __init__(self, current_project: str, previous_project: str):
        self.current_project = current_project
        self.previous_project = previous_project
        super().__init__(
            f"Cannot compare scan of project {current_project!r} "
            f"against baseline of project {previous_project!r}"
        )
