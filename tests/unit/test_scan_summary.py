"""
Unit tests for compliance scores and scan summaries.
"""

import json

import pytest

from compliance_drift.core.models import ControlStatus, Finding, Severity
from compliance_drift.matching import ControlMatch, MatchResult
from compliance_drift.reporting import ScanSummary, build_scan_summary
from compliance_drift.reporting.compliance_scorer import (
    category_key,
    category_scores,
    compliance_score,
    control_scores,
)


@pytest.fixture
def findings():
    return [
        Finding("f1", "Access Control", severity="high"),
        Finding("f2", "Access Control", severity=Severity.LOW),
        Finding("f3", "CVE", severity="critical"),
        Finding("f4", "Config Drift", severity="info"),
    ]


@pytest.fixture
def match_results():
    return [
        MatchResult("f1", (ControlMatch("A", 0.9), ControlMatch("B", 0.5))),
        MatchResult("f2", (ControlMatch("A", 0.8),)),
        MatchResult("f3", ()),
        MatchResult("f4", (ControlMatch("C", 0.6),)),
    ]


class TestComplianceScorer:
    """Test severity-weighted scoring."""

    def test_no_findings_is_fully_compliant(self):
        assert compliance_score([]) == 100

    def test_compliance_score(self, findings):
        # penalties 3 + 1 + 4 + 0 out of 4 * 4
        assert compliance_score(findings) == 50

    def test_category_key(self):
        assert category_key("Access Control/IAM") == "access-control-iam"

    def test_category_scores(self, findings):
        assert category_scores(findings) == {
            "access-control": 50,
            "config-drift": 100,
            "cve": 0,
        }

    def test_control_scores(self, findings, match_results):
        assert control_scores(findings, match_results) == {"A": 50, "B": 25, "C": 100}

    def test_half_rounds_up(self):
        # 7 of 8 penalty avoided -> 87.5
        findings = [Finding("a", "x", severity="info"), Finding("b", "x", severity="low")]
        assert compliance_score(findings) == 88


class TestScanSummary:
    """Test summary construction and serialization."""

    def test_control_statuses(self, findings, match_results):
        summary = build_scan_summary("p1", "r1", findings, match_results, assessed_controls=["A", "B", "C", "D"])

        assert dict(summary.control_statuses) == {
            "A": ControlStatus.VIOLATED,
            "B": ControlStatus.VIOLATED,
            "C": ControlStatus.UNKNOWN,
            "D": ControlStatus.SATISFIED,
        }

    def test_violation_outranks_unknown(self):
        findings = [Finding("f1", "x", severity="info"), Finding("f2", "x", severity="medium")]
        results = [MatchResult("f1", (ControlMatch("A", 0.5),)), MatchResult("f2", (ControlMatch("A", 0.5),))]
        summary = build_scan_summary("p1", "r1", findings, results)
        assert summary.status_of("A") is ControlStatus.VIOLATED

    def test_unrated_finding_is_unknown(self):
        summary = build_scan_summary("p1", "r1", [Finding("f1", "x")], [MatchResult("f1", (ControlMatch("A", 0.5),))])
        assert summary.status_of("A") is ControlStatus.UNKNOWN

    def test_summary_fields(self, findings, match_results):
        summary = build_scan_summary("p1", "r1", reversed(findings), reversed(match_results), version=3)

        assert summary.name == "p1/r1@v3"
        assert [r.finding_id for r in summary.match_results] == ["f1", "f2", "f3", "f4"]
        assert summary.finding_categories == frozenset({"Access Control", "CVE", "Config Drift"})
        assert summary.compliance_score == 50

    def test_summary_is_immutable(self, findings, match_results):
        summary = build_scan_summary("p1", "r1", findings, match_results)
        with pytest.raises(AttributeError):
            summary.version = 2
        with pytest.raises(TypeError):
            summary.control_statuses["A"] = ControlStatus.SATISFIED

    def test_json_round_trip(self, findings, match_results):
        summary = build_scan_summary("p1", "r1", findings, match_results, assessed_controls=["D"])

        restored = ScanSummary.from_dict(json.loads(json.dumps(summary.to_dict())))

        assert restored == summary
