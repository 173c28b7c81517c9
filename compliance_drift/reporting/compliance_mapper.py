"""
Compliance mapper for grouping matched findings and drift by framework.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..catalog.control_catalog import ControlCatalog
from ..matching.match_engine import MatchResult
from .drift_analyzer import ControlDrift, DriftClassification, DriftReport

logger = logging.getLogger(__name__)

# Most severe first; a rolled-up group takes the first one any child has
ROLLUP_PRECEDENCE = (
    DriftClassification.REGRESSED,
    DriftClassification.NEW,
    DriftClassification.PERSISTING,
    DriftClassification.RESOLVED,
    DriftClassification.UNCHANGED,
)


@dataclass
class RollupGroup:
    """Drift entries collapsed under a parent control."""
    control_id: str
    entries: List[ControlDrift] = field(default_factory=list)

    @property
    def classification(self) -> DriftClassification:
        present = {entry.classification for entry in self.entries}
        return next(c for c in ROLLUP_PRECEDENCE if c in present)

    @property
    def counts(self) -> Dict[DriftClassification, int]:
        counts = {classification: 0 for classification in DriftClassification}
        for entry in self.entries:
            counts[entry.classification] += 1
        return counts


class ComplianceMapper:
    """Map match results and drift entries onto frameworks and parent controls."""

    def __init__(self, catalog: ControlCatalog):
        self.catalog = catalog

    def map_findings_to_frameworks(self, results: Iterable[MatchResult]) -> Dict[str, Dict[str, List[str]]]:
        """
        Group matched findings by framework and control.

        Returns:
            ``{framework: {control_id: [finding_id, ...]}}``; controls no
            longer in the catalog are grouped under ``"unknown"``.
        """
        frameworks: Dict[str, Dict[str, List[str]]] = defaultdict(lambda: defaultdict(list))
        for result in results:
            for control_id in result.control_ids:
                control = self.catalog.get(control_id)
                framework = control.framework if control is not None else "unknown"
                frameworks[framework][control_id].append(result.finding_id)

        return {
            framework: {cid: sorted(ids) for cid, ids in sorted(controls.items())}
            for framework, controls in sorted(frameworks.items())
        }

    def rollup(self, report: DriftReport) -> Dict[str, RollupGroup]:
        """
        Collapse leaf drift entries into their parent controls.

        An entry with several parents is counted under each of them; an entry
        without a parent forms its own group.
        """
        parents: Dict[str, List[str]] = defaultdict(list)
        for control in self.catalog.snapshot():
            for child in control.mapped_controls:
                parents[child].append(control.control_id)

        groups: Dict[str, RollupGroup] = {}
        for entry in report.entries:
            for parent_id in sorted(parents.get(entry.control_id, [entry.control_id])):
                group = groups.setdefault(parent_id, RollupGroup(parent_id))
                group.entries.append(entry)

        logger.debug(
            "Rolled up %d drift entries into %d groups for project %s",
            len(report.entries), len(groups), report.project_id,
        )
        return dict(sorted(groups.items()))
