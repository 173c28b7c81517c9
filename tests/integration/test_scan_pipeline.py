"""
Integration tests for the scan pipeline

Tests the complete flow from findings to drift reports:
- Topic tagging and batch matching against a catalog
- Remediation guidance
- Scan summaries and drift between successive runs
- The command line interface
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from compliance_drift.catalog import ControlCatalog, ControlTopic, TopicTagger
from compliance_drift.core.models import Control, ControlStatus, Finding
from compliance_drift.main import cli
from compliance_drift.matching import BatchMatcher, MatchEngine
from compliance_drift.reporting import (
    ComplianceMapper,
    DriftClassification,
    DriftState,
    DriftTracker,
    RecommendationResolver,
    RemediationSource,
    build_scan_summary,
)

CONTROLS = [
    {
        "controlId": "SOC2-CC6.1",
        "framework": "SOC2",
        "title": "Logical access",
        "description": "Restrict logical access to information assets.",
        "embedding": [1.0, 0.0, 0.0],
        "topicTags": ["access-control"],
        "mappedControls": ["ISO-A.9.1"],
    },
    {
        "controlId": "SOC2-CC6.6",
        "framework": "SOC2",
        "title": "Authentication",
        "description": "Require strong authentication for remote access.",
        "embedding": [0.0, 1.0, 0.0],
        "topicTags": ["authentication"],
    },
    {
        "controlId": "ISO-A.9.1",
        "framework": "ISO27001",
        "title": "Access control policy",
        "description": "Maintain an access control policy.",
        "topicTags": ["access-control"],
    },
    {
        "controlId": "SOC2-CC7.2",
        "framework": "SOC2",
        "title": "Vulnerability management",
        "description": "Identify and remediate vulnerable components.",
        "embedding": [0.0, 0.0, 1.0],
        "topicTags": ["vulnerability"],
    },
]

TOPICS = [
    {"slug": "access-control", "label": "Access Control", "embedding": [1.0, 0.0, 0.0]},
    {"slug": "authentication", "label": "Authentication", "embedding": [0.0, 1.0, 0.0]},
    {"slug": "vulnerability", "label": "Vulnerability", "embedding": [0.0, 0.0, 1.0]},
]

RUN_1 = [
    {"id": "f1", "category": "UNAUTH_ACCESS", "embedding": [0.95, 0.05, 0.0], "severity": "high"},
    {"id": "f2", "category": "CVE-2024-0001", "embedding": [0.05, 0.0, 0.95], "severity": "critical"},
    {"id": "f3", "category": "NOTE", "severity": "info"},
]

RUN_2 = [
    {"id": "g1", "category": "FAILED_LOGIN", "embedding": [0.0, 0.95, 0.05], "severity": "medium"},
    {"id": "g2", "category": "CVE-2024-0001", "embedding": [0.05, 0.0, 0.95], "severity": "critical"},
]


def findings(records, run):
    return [Finding.from_dict({**record, "projectId": "p1", "scanRunId": run}) for record in records]


@pytest.fixture
def catalog():
    return ControlCatalog(Control.from_dict(item) for item in CONTROLS)


@pytest.fixture
def tagger():
    return TopicTagger((ControlTopic.from_dict(item) for item in TOPICS), top_n=1)


class TestScanPipeline:
    """Test matching, remediation and drift across two scan runs."""

    def run_scan(self, catalog, tagger, records, run, version):
        scan_findings = [tagger.enrich(f) for f in findings(records, run)]
        batch = BatchMatcher(MatchEngine(catalog), max_workers=2).match_all(scan_findings)
        assert not batch.partial
        summary = build_scan_summary(
            "p1", run, scan_findings, batch.results,
            assessed_controls=[c.control_id for c in catalog],
            version=version,
        )
        return scan_findings, batch, summary

    def test_two_runs(self, catalog, tagger):
        tracker = DriftTracker()

        run1_findings, batch1, summary1 = self.run_scan(catalog, tagger, RUN_1, "r1", 1)
        results = batch1.by_finding()

        assert results["f1"].top.control_id == "SOC2-CC6.1"
        # tag-only control reached through the finding's topic tag
        assert "ISO-A.9.1" in results["f1"].control_ids
        assert results["f2"].top.control_id == "SOC2-CC7.2"
        assert len(results["f3"]) == 0

        resolver = RecommendationResolver(catalog)
        by_id = {f.id: f for f in run1_findings}
        assert resolver.resolve(by_id["f1"], results["f1"]).source is RemediationSource.CANONICAL
        derived = resolver.resolve(by_id["f2"], results["f2"])
        assert derived.source is RemediationSource.DERIVED
        assert derived.control_id == "SOC2-CC7.2"
        assert resolver.resolve(by_id["f3"], results["f3"]).source is RemediationSource.NONE

        report1 = tracker.track(summary1)
        assert report1.state is DriftState.BASELINE
        assert summary1.status_of("SOC2-CC6.1") is ControlStatus.VIOLATED
        assert summary1.status_of("SOC2-CC6.6") is ControlStatus.SATISFIED

        _, _, summary2 = self.run_scan(catalog, tagger, RUN_2, "r2", 2)
        report2 = tracker.track(summary2)
        classifications = {e.control_id: e.classification for e in report2.entries}

        assert report2.state is DriftState.DRIFTED
        assert classifications["SOC2-CC6.1"] is DriftClassification.RESOLVED
        assert classifications["ISO-A.9.1"] is DriftClassification.RESOLVED
        assert classifications["SOC2-CC6.6"] is DriftClassification.REGRESSED
        assert classifications["SOC2-CC7.2"] is DriftClassification.PERSISTING
        assert report2.new_findings == ("FAILED_LOGIN",)
        assert set(report2.resolved_findings) == {"NOTE", "UNAUTH_ACCESS"}

        groups = ComplianceMapper(catalog).rollup(report2)
        # the parent keeps its own entry alongside the controls it maps
        assert [e.control_id for e in groups["SOC2-CC6.1"].entries] == ["ISO-A.9.1", "SOC2-CC6.1"]
        assert groups["SOC2-CC6.1"].classification is DriftClassification.RESOLVED
        assert "ISO-A.9.1" not in groups

        frameworks = ComplianceMapper(catalog).map_findings_to_frameworks(batch1.results)
        assert frameworks["SOC2"]["SOC2-CC6.1"] == ["f1"]
        assert frameworks["ISO27001"]["ISO-A.9.1"] == ["f1"]


class TestCLI:
    """Test the command line interface end to end."""

    @pytest.fixture
    def files(self, tmp_path):
        paths = {
            "controls": tmp_path / "controls.yaml",
            "topics": tmp_path / "topics.json",
            "run1": tmp_path / "run1.yaml",
            "run2": tmp_path / "run2.json",
        }
        paths["controls"].write_text(yaml.safe_dump({"controls": CONTROLS}))
        paths["topics"].write_text(json.dumps(TOPICS))
        paths["run1"].write_text(yaml.safe_dump({"findings": RUN_1}))
        paths["run2"].write_text(json.dumps(RUN_2))
        return paths

    def test_match(self, files, tmp_path):
        output = tmp_path / "matches.json"
        result = CliRunner().invoke(cli, [
            "match", str(files["controls"]), str(files["run1"]),
            "--topics", str(files["topics"]), "-o", str(output),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["partial"] is False
        assert [row["finding_id"] for row in data["results"]] == ["f1", "f2", "f3"]
        assert data["results"][0]["remediation_source"] == "canonical"
        assert data["results"][1]["remediation_source"] == "derived"
        assert data["frameworks"]["SOC2"]["SOC2-CC7.2"] == ["f2"]

    def test_scan_then_drift(self, files, tmp_path):
        runner = CliRunner()
        summary1 = tmp_path / "summary1.json"
        summary2 = tmp_path / "summary2.json"
        report = tmp_path / "report.json"

        result = runner.invoke(cli, [
            "scan", str(files["controls"]), str(files["run1"]),
            "--project", "p1", "--scan-run", "r1", "--summary-out", str(summary1),
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, [
            "scan", str(files["controls"]), str(files["run2"]),
            "--project", "p1", "--scan-run", "r2", "--baseline", str(summary1),
            "--summary-out", str(summary2), "--report-out", str(report),
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(summary2.read_text())["version"] == 2
        assert json.loads(report.read_text())["state"] == "drifted"

        rollup_report = tmp_path / "rollup.json"
        result = runner.invoke(cli, [
            "drift", str(summary2), "--baseline", str(summary1),
            "--controls", str(files["controls"]), "-o", str(rollup_report),
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(rollup_report.read_text())
        assert data["baseline_scan_run_id"] == "r1"
        assert "SOC2-CC6.1" in data["rollup"]

    def test_invalid_top_k(self, files):
        result = CliRunner().invoke(cli, [
            "match", str(files["controls"]), str(files["run1"]), "--top-k", "0",
        ])
        assert result.exit_code == 1
        assert "top_k" in result.output

    def test_drift_across_projects(self, files, tmp_path):
        runner = CliRunner()
        summaries = {}
        for project in ("p1", "p2"):
            path = tmp_path / f"{project}.json"
            result = runner.invoke(cli, [
                "scan", str(files["controls"]), str(files["run1"]),
                "--project", project, "--scan-run", "r1", "--summary-out", str(path),
            ])
            assert result.exit_code == 0, result.output
            summaries[project] = path

        result = runner.invoke(cli, ["drift", str(summaries["p2"]), "--baseline", str(summaries["p1"])])
        assert result.exit_code == 1

    @pytest.fixture
    def summary_file(self, files, tmp_path):
        path = tmp_path / "summary.json"
        result = CliRunner().invoke(cli, [
            "scan", str(files["controls"]), str(files["run1"]),
            "--project", "p1", "--scan-run", "r1", "--summary-out", str(path),
        ])
        assert result.exit_code == 0, result.output
        return path

    @pytest.mark.parametrize("controls", [
        [{"framework": "SOC2", "title": "No id"}],
        [
            {"controlId": "A", "framework": "SOC2", "title": "A", "embedding": [1.0, 0.0]},
            {"controlId": "B", "framework": "SOC2", "title": "B", "embedding": [1.0, 0.0, 0.0]},
        ],
    ])
    def test_drift_with_invalid_controls(self, summary_file, tmp_path, controls):
        controls_path = tmp_path / "bad_controls.yaml"
        controls_path.write_text(yaml.safe_dump({"controls": controls}))

        result = CliRunner().invoke(cli, ["drift", str(summary_file), "--controls", str(controls_path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error" in result.output

    def test_drift_with_non_mapping_summary(self, tmp_path):
        path = tmp_path / "summary.json"
        path.write_text(json.dumps([1, 2, 3]))

        result = CliRunner().invoke(cli, ["drift", str(path)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "mapping" in result.output
