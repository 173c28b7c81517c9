"""
Remediation, scan summaries and drift reporting.

This module provides:
- Remediation guidance resolution
- Severity-weighted compliance scoring
- Scan summaries and drift analysis between successive scans
- Framework grouping and parent-control rollup
"""

from .compliance_mapper import ComplianceMapper, RollupGroup
from .drift_analyzer import (
    ControlDrift,
    DriftAnalyzer,
    DriftClassification,
    DriftReport,
    DriftState,
)
from .recommendations import (
    DEFAULT_RECOMMENDATIONS,
    RecommendationResolver,
    RemediationSource,
    RemediationText,
    load_recommendations,
)
from .scan_history import DriftTracker, ScanHistory
from .scan_summary import ScanSummary, build_scan_summary

__all__ = [
    'ComplianceMapper',
    'RollupGroup',
    'ControlDrift',
    'DriftAnalyzer',
    'DriftClassification',
    'DriftReport',
    'DriftState',
    'DEFAULT_RECOMMENDATIONS',
    'RecommendationResolver',
    'RemediationSource',
    'RemediationText',
    'load_recommendations',
    'DriftTracker',
    'ScanHistory',
    'ScanSummary',
    'build_scan_summary',
]
