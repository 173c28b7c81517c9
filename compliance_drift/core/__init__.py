"""
Core functionality for the compliance drift engine
"""

from .config import Config, get_config
from .exceptions import (
    ComplianceDriftError,
    ControlNotFound,
    DimensionMismatch,
    InvalidConfig,
    ProjectMismatch,
)
from .logger import get_logger
from .models import Control, ControlStatus, Finding, Severity
from .vector_math import cosine_similarity, dot, norm

__all__ = [
    "Config",
    "get_config",
    "get_logger",
    "ComplianceDriftError",
    "ControlNotFound",
    "DimensionMismatch",
    "InvalidConfig",
    "ProjectMismatch",
    "Control",
    "ControlStatus",
    "Finding",
    "Severity",
    "cosine_similarity",
    "dot",
    "norm",
]
