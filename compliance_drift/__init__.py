"""
Compliance Drift - semantic control mapping and drift detection

Maps compliance findings and scanned vulnerabilities to canonical regulatory
controls by embedding similarity and topic overlap, resolves remediation
guidance, and tracks how a project's control mapping drifts between scans.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from compliance_drift.core.config import Config
from compliance_drift.core.logger import get_logger

# Core exports
__all__ = [
    "Config",
    "get_logger",
    "__version__",
]
