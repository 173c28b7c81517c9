"""
Severity-weighted compliance scores.

Each finding costs a penalty by severity; a score is the share of the
worst-case penalty that was avoided, as a 0-100 integer.
"""

import math
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from ..core.models import Finding, Severity
from ..matching.match_engine import MatchResult

SEVERITY_WEIGHTS: Mapping[Optional[Severity], int] = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
    None: 0,
}
MAX_WEIGHT = max(SEVERITY_WEIGHTS.values())


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _score(findings: List[Finding]) -> int:
    max_penalty = len(findings) * MAX_WEIGHT
    actual_penalty = sum(SEVERITY_WEIGHTS[f.severity] for f in findings)
    return _round_half_up((max_penalty - actual_penalty) / max_penalty * 100)


def category_key(category: str) -> str:
    """Normalize a category into a slug, e.g. ``Access Control`` -> ``access-control``."""
    return re.sub(r"[^a-z0-9]", "-", category.lower())


def compliance_score(findings: Iterable[Finding]) -> int:
    """Overall score for a scan run; 100 when there are no findings."""
    findings = list(findings)
    if not findings:
        return 100
    return _score(findings)


def category_scores(findings: Iterable[Finding]) -> Dict[str, int]:
    groups: Dict[str, List[Finding]] = defaultdict(list)
    for finding in findings:
        groups[category_key(finding.category)].append(finding)
    return {category: _score(group) for category, group in sorted(groups.items())}


def control_scores(findings: Iterable[Finding], match_results: Iterable[MatchResult]) -> Dict[str, int]:
    """Scores per control over the findings matched to it."""
    by_id = {finding.id: finding for finding in findings}
    groups: Dict[str, List[Finding]] = defaultdict(list)
    for result in match_results:
        finding = by_id.get(result.finding_id)
        if finding is None:
            continue
        for control_id in result.control_ids:
            groups[control_id].append(finding)
    return {control_id: _score(group) for control_id, group in sorted(groups.items())}
