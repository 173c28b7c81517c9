"""
Remediation guidance for findings.

Canned guidance is keyed by finding category (exact, case-sensitive match).
Findings with an unknown category borrow the description of their best
matched control, marked as derived guidance.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

from ..catalog.control_catalog import ControlCatalog
from ..core.exceptions import InvalidConfig
from ..core.models import Finding
from ..matching.match_engine import MatchResult

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATIONS: Mapping[str, str] = MappingProxyType({
    "UNAUTH_ACCESS": "Ensure all endpoints have proper access control and logging.",
    "FAILED_LOGIN": "Set up account lockout policies and investigate repeated failed login attempts.",
    "ROOT_ACCESS": "Restrict root access and enforce least privilege principle.",
})

DERIVED_PREFIX = "Derived from control {control_id}: "
NO_GUIDANCE = "No remediation guidance available."


class RemediationSource(Enum):
    """Where a piece of remediation text came from"""
    CANONICAL = "canonical"
    DERIVED = "derived"
    NONE = "none"


@dataclass(frozen=True)
class RemediationText:
    text: str
    source: RemediationSource
    control_id: Optional[str] = None

    def __str__(self) -> str:
        return self.text


def load_recommendations(path: Path) -> Mapping[str, str]:
    """
    Load a remediation table from a YAML mapping of category to text.

    Raises:
        InvalidConfig: If the document is not a flat string-to-string mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidConfig(f"Remediation table {path} must be a mapping")
    for key, value in data.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidConfig(
                f"Remediation table {path} has a non-string entry: {key!r}"
            )

    logger.info("Loaded %d remediation entries from %s", len(data), path)
    return MappingProxyType(dict(data))


class RecommendationResolver:
    """Resolve displayable remediation text for a finding."""

    def __init__(self, catalog: ControlCatalog, recommendations: Optional[Mapping[str, str]] = None):
        self.catalog = catalog
        table = DEFAULT_RECOMMENDATIONS if recommendations is None else recommendations
        self.recommendations: Mapping[str, str] = MappingProxyType(dict(table))

    def resolve(self, finding: Finding, match_result: Optional[MatchResult] = None) -> RemediationText:
        """
        Resolve remediation guidance. Never raises.

        Args:
            finding: Finding to annotate
            match_result: Ranked controls for the finding, if matched

        Returns:
            Canned text for a known category, else the top matched control's
            description as derived guidance, else a no-guidance marker.
        """
        canned = self.recommendations.get(finding.category)
        if canned is not None:
            return RemediationText(canned, RemediationSource.CANONICAL)

        for match in (match_result.matches if match_result else ()):
            control = self.catalog.get(match.control_id)
            if control is None:
                logger.warning(
                    "Matched control %s for finding %s is no longer in the catalog",
                    match.control_id, finding.id,
                )
                continue
            return RemediationText(
                DERIVED_PREFIX.format(control_id=control.control_id) + control.description,
                RemediationSource.DERIVED,
                control_id=control.control_id,
            )

        return RemediationText(NO_GUIDANCE, RemediationSource.NONE)
