"""
Compliance drift analysis.

Compares the control statuses of a scan run against the previous run's
summary for the same project. Comparison is done per leaf control id;
collapsing child controls into parents is left to ComplianceMapper.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..core.exceptions import ProjectMismatch
from ..core.models import ControlStatus
from .scan_summary import ScanSummary

logger = logging.getLogger(__name__)


class DriftClassification(Enum):
    """How a control changed between two scans"""
    NEW = "new"
    RESOLVED = "resolved"
    REGRESSED = "regressed"
    PERSISTING = "persisting"
    UNCHANGED = "unchanged"


class DriftState(Enum):
    """Lifecycle state of a project's drift tracking"""
    NO_BASELINE = "no_baseline"
    BASELINE = "baseline"
    DRIFTED = "drifted"
    STABLE = "stable"


DRIFT_CLASSIFICATIONS = (
    DriftClassification.NEW,
    DriftClassification.RESOLVED,
    DriftClassification.REGRESSED,
)


@dataclass(frozen=True)
class ControlDrift:
    control_id: str
    classification: DriftClassification
    previous_status: Optional[ControlStatus] = None
    current_status: Optional[ControlStatus] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "control_id": self.control_id,
            "classification": self.classification.value,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "current_status": self.current_status.value if self.current_status else None,
        }


@dataclass(frozen=True)
class DriftReport:
    """Structured comparison of a scan run against its baseline."""
    project_id: str
    scan_run_id: str
    baseline_scan_run_id: Optional[str]
    state: DriftState
    entries: Tuple[ControlDrift, ...] = ()
    new_findings: Tuple[str, ...] = ()
    resolved_findings: Tuple[str, ...] = ()
    unchanged_findings: Tuple[str, ...] = ()
    score_delta: int = 0
    control_score_delta: Dict[str, int] = field(default_factory=dict)
    category_score_delta: Dict[str, int] = field(default_factory=dict)

    @property
    def counts(self) -> Dict[DriftClassification, int]:
        counts = {classification: 0 for classification in DriftClassification}
        for entry in self.entries:
            counts[entry.classification] += 1
        return counts

    @property
    def has_drift(self) -> bool:
        return self.state is DriftState.DRIFTED

    def by_classification(self, classification: DriftClassification) -> List[ControlDrift]:
        return [entry for entry in self.entries if entry.classification is classification]

    @property
    def summary(self) -> str:
        """Human-readable rendering of the report (the stored drift summary)."""
        counts = self.counts

        if self.baseline_scan_run_id is None:
            return (
                f"Initial baseline for project {self.project_id} (run {self.scan_run_id}): "
                f"{counts[DriftClassification.NEW]} controls recorded."
            )

        parts = ", ".join(
            f"{counts[classification]} {classification.value}"
            for classification in DriftClassification
        )
        verdict = "drift detected" if self.has_drift else "no drift"
        lines = [
            f"Project {self.project_id} run {self.scan_run_id} vs {self.baseline_scan_run_id}: "
            f"{verdict}; controls {parts}; compliance score {self.score_delta:+d}."
        ]

        regressed = [entry.control_id for entry in self.by_classification(DriftClassification.REGRESSED)]
        if regressed:
            lines.append(f"Regressed controls: {', '.join(regressed)}.")
        if self.new_findings:
            lines.append(f"New findings: {', '.join(self.new_findings)}.")
        if self.resolved_findings:
            lines.append(f"Resolved findings: {', '.join(self.resolved_findings)}.")
        return " ".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "scan_run_id": self.scan_run_id,
            "baseline_scan_run_id": self.baseline_scan_run_id,
            "state": self.state.value,
            "counts": {classification.value: count for classification, count in self.counts.items()},
            "entries": [entry.to_dict() for entry in self.entries],
            "new_findings": list(self.new_findings),
            "resolved_findings": list(self.resolved_findings),
            "unchanged_findings": list(self.unchanged_findings),
            "score_delta": self.score_delta,
            "control_score_delta": dict(self.control_score_delta),
            "category_score_delta": dict(self.category_score_delta),
            "summary": self.summary,
        }


def classify(
        previous: Optional[ControlStatus],
        current: Optional[ControlStatus]
) -> DriftClassification:
    """Classify one control's transition between two scans."""
    if previous is None:
        return DriftClassification.NEW

    if previous is ControlStatus.SATISFIED:
        if current in (ControlStatus.VIOLATED, ControlStatus.UNKNOWN):
            return DriftClassification.REGRESSED
        return DriftClassification.UNCHANGED

    if current is None or current is ControlStatus.SATISFIED:
        return DriftClassification.RESOLVED
    # violated and unknown both count as still open
    return DriftClassification.PERSISTING


def _delta(current: Dict[str, int], previous: Dict[str, int]) -> Dict[str, int]:
    keys = sorted(set(current) | set(previous))
    return {key: current.get(key, 0) - previous.get(key, 0) for key in keys}


class DriftAnalyzer:
    """Compare a scan summary against the previous one for the same project."""

    def analyze(self, current: ScanSummary, previous: Optional[ScanSummary] = None) -> DriftReport:
        """
        Produce a drift report.

        Args:
            current: Summary of the scan run just completed
            previous: Latest earlier summary of the project, or None on the
                first run

        Returns:
            DriftReport; on the first run every control is ``new`` and the
            state is ``baseline``.

        Raises:
            ProjectMismatch: If the summaries belong to different projects.
        """
        if previous is None:
            entries = tuple(
                ControlDrift(control_id, DriftClassification.NEW, None, status)
                for control_id, status in sorted(current.control_statuses.items())
            )
            logger.info(
                "Project %s has no baseline; recording %d controls from run %s",
                current.project_id, len(entries), current.scan_run_id,
            )
            return DriftReport(
                project_id=current.project_id,
                scan_run_id=current.scan_run_id,
                baseline_scan_run_id=None,
                state=DriftState.BASELINE,
                entries=entries,
                new_findings=tuple(sorted(current.finding_categories)),
            )

        if current.project_id != previous.project_id:
            raise ProjectMismatch(current.project_id, previous.project_id)

        control_ids = sorted(set(current.control_statuses) | set(previous.control_statuses))
        entries = []
        for control_id in control_ids:
            before = previous.status_of(control_id)
            after = current.status_of(control_id)
            entries.append(ControlDrift(control_id, classify(before, after), before, after))

        drifted = any(entry.classification in DRIFT_CLASSIFICATIONS for entry in entries)
        report = DriftReport(
            project_id=current.project_id,
            scan_run_id=current.scan_run_id,
            baseline_scan_run_id=previous.scan_run_id,
            state=DriftState.DRIFTED if drifted else DriftState.STABLE,
            entries=tuple(entries),
            new_findings=tuple(sorted(current.finding_categories - previous.finding_categories)),
            resolved_findings=tuple(sorted(previous.finding_categories - current.finding_categories)),
            unchanged_findings=tuple(sorted(current.finding_categories & previous.finding_categories)),
            score_delta=current.compliance_score - previous.compliance_score,
            control_score_delta=_delta(dict(current.control_scores), dict(previous.control_scores)),
            category_score_delta=_delta(dict(current.category_scores), dict(previous.category_scores)),
        )

        logger.info(
            "Project %s run %s vs %s: %s",
            report.project_id, report.scan_run_id, report.baseline_scan_run_id,
            report.state.value,
        )
        return report
