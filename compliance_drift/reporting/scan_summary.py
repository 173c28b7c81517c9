"""
Per-project scan summaries.

A summary is created once per completed scan run and never modified; the
next run's summary supersedes it as the drift baseline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Tuple

from ..core.models import ControlStatus, Finding, Severity
from ..matching.match_engine import MatchResult
from .compliance_scorer import category_scores, compliance_score, control_scores


def _frozen_mapping(data: Mapping) -> Mapping:
    return MappingProxyType(dict(sorted(data.items())))


@dataclass(frozen=True)
class ScanSummary:
    """Immutable snapshot of one scan run's control mapping."""
    project_id: str
    scan_run_id: str
    version: int = 1
    match_results: Tuple[MatchResult, ...] = ()
    control_statuses: Mapping[str, ControlStatus] = field(default_factory=dict)
    finding_categories: FrozenSet[str] = field(default_factory=frozenset)
    compliance_score: int = 100
    control_scores: Mapping[str, int] = field(default_factory=dict)
    category_scores: Mapping[str, int] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "match_results", tuple(
            sorted(self.match_results, key=lambda result: result.finding_id)
        ))
        object.__setattr__(self, "control_statuses", _frozen_mapping(
            {cid: ControlStatus(status) for cid, status in self.control_statuses.items()}
        ))
        object.__setattr__(self, "finding_categories", frozenset(self.finding_categories))
        object.__setattr__(self, "control_scores", _frozen_mapping(self.control_scores))
        object.__setattr__(self, "category_scores", _frozen_mapping(self.category_scores))

    @property
    def name(self) -> str:
        return f"{self.project_id}/{self.scan_run_id}@v{self.version}"

    def status_of(self, control_id: str):
        return self.control_statuses.get(control_id)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation for the persistence layer."""
        return {
            "project_id": self.project_id,
            "scan_run_id": self.scan_run_id,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "compliance_score": self.compliance_score,
            "control_statuses": {cid: status.value for cid, status in self.control_statuses.items()},
            "control_scores": dict(self.control_scores),
            "category_scores": dict(self.category_scores),
            "finding_categories": sorted(self.finding_categories),
            "match_results": [result.to_dict() for result in self.match_results],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanSummary":
        if not isinstance(data, Mapping):
            raise TypeError(f"Scan summary must be a mapping, got {type(data).__name__}")
        created_at = data.get("created_at")
        return cls(
            project_id=str(data["project_id"]),
            scan_run_id=str(data["scan_run_id"]),
            version=int(data.get("version", 1)),
            match_results=tuple(MatchResult.from_dict(item) for item in data.get("match_results", ())),
            control_statuses=data.get("control_statuses", {}),
            finding_categories=data.get("finding_categories", ()),
            compliance_score=int(data.get("compliance_score", 100)),
            control_scores=data.get("control_scores", {}),
            category_scores=data.get("category_scores", {}),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(timezone.utc),
        )


def derive_control_statuses(
        findings: Iterable[Finding],
        match_results: Iterable[MatchResult],
        assessed_controls: Iterable[str] = ()
) -> Dict[str, ControlStatus]:
    """
    Aggregate per-control status for a scan run.

    A control matched by a finding of known, non-info severity is violated;
    one matched only by info or unrated findings is unknown; an assessed
    control nothing matched is satisfied.
    """
    severities = {finding.id: finding.severity for finding in findings}
    statuses: Dict[str, ControlStatus] = {cid: ControlStatus.SATISFIED for cid in assessed_controls}

    for result in match_results:
        severity = severities.get(result.finding_id)
        violated = severity is not None and severity is not Severity.INFO
        for control_id in result.control_ids:
            if violated:
                statuses[control_id] = ControlStatus.VIOLATED
            elif statuses.get(control_id) is not ControlStatus.VIOLATED:
                statuses[control_id] = ControlStatus.UNKNOWN

    return statuses


def build_scan_summary(
        project_id: str,
        scan_run_id: str,
        findings: Iterable[Finding],
        match_results: Iterable[MatchResult],
        assessed_controls: Iterable[str] = (),
        version: int = 1
) -> ScanSummary:
    """
    Build the summary of a completed scan run.

    Args:
        project_id: Project scanned
        scan_run_id: Scan run identifier
        findings: Findings of the run
        match_results: Match results of the run's findings
        assessed_controls: Controls in scope for the run; those without any
            matched finding are recorded as satisfied
        version: Position of this summary in the project's history
    """
    findings = list(findings)
    match_results = list(match_results)
    return ScanSummary(
        project_id=project_id,
        scan_run_id=scan_run_id,
        version=version,
        match_results=tuple(match_results),
        control_statuses=derive_control_statuses(findings, match_results, assessed_controls),
        finding_categories=frozenset(f.category for f in findings if f.category),
        compliance_score=compliance_score(findings),
        control_scores=control_scores(findings, match_results),
        category_scores=category_scores(findings),
    )
