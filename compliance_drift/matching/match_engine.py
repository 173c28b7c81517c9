"""
Control Match Engine

Ranks catalog controls for a finding by blending embedding similarity with
topic tag overlap, then applies a score threshold and a top-K cutoff.

This is threshold-filtered top-K ranking over a linear catalog scan, not
exact or approximate nearest-neighbour search. Control taxonomies hold
hundreds of entries, so no vector index is built.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..catalog.control_catalog import ControlCatalog
from ..core.exceptions import InvalidConfig
from ..core.models import Finding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchConfig:
    """
    Ranking options for a match.

    Weights need not sum to 1. Invalid values are rejected with
    ``InvalidConfig`` when the config is built, before any matching work.
    """
    weight_semantic: float = 0.7
    weight_tag: float = 0.3
    min_score: float = 0.15
    top_k: int = 5

    def __post_init__(self):
        for name in ("weight_semantic", "weight_tag"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value) or value < 0:
                raise InvalidConfig(f"{name} must be a non-negative number, got {value!r}")
        if not _is_number(self.min_score) or not math.isfinite(self.min_score):
            raise InvalidConfig(f"min_score must be a finite number, got {self.min_score!r}")
        if isinstance(self.top_k, bool) or not isinstance(self.top_k, int) or self.top_k <= 0:
            raise InvalidConfig(f"top_k must be a positive integer, got {self.top_k!r}")

    @classmethod
    def from_settings(cls, settings) -> "MatchConfig":
        """Build from a ``MatchingConfig`` settings model."""
        return cls(
            weight_semantic=settings.weight_semantic,
            weight_tag=settings.weight_tag,
            min_score=settings.min_score,
            top_k=settings.top_k,
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class ControlMatch:
    """One ranked control for a finding"""
    control_id: str
    score: float
    semantic_score: float = 0.0
    tag_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "control_id": self.control_id,
            "score": self.score,
            "semantic_score": self.semantic_score,
            "tag_score": self.tag_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControlMatch":
        return cls(
            control_id=data.get("control_id", data.get("controlId")),
            score=float(data["score"]),
            semantic_score=float(data.get("semantic_score", 0.0)),
            tag_score=float(data.get("tag_score", 0.0)),
        )


@dataclass(frozen=True)
class MatchResult:
    """Ranked controls for one finding, best first."""
    finding_id: str
    matches: Tuple[ControlMatch, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "matches", tuple(self.matches))

    def __len__(self) -> int:
        return len(self.matches)

    def __bool__(self) -> bool:
        return bool(self.matches)

    @property
    def top(self) -> Optional[ControlMatch]:
        return self.matches[0] if self.matches else None

    @property
    def control_ids(self) -> List[str]:
        return [match.control_id for match in self.matches]

    def pairs(self) -> List[Tuple[str, float]]:
        """``(control_id, score)`` pairs in rank order."""
        return [(match.control_id, match.score) for match in self.matches]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "finding_id": self.finding_id,
            "matches": [match.to_dict() for match in self.matches],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchResult":
        return cls(
            finding_id=str(data.get("finding_id", data.get("findingId"))),
            matches=tuple(ControlMatch.from_dict(item) for item in data.get("matches", ())),
        )


class MatchEngine:
    """Map findings to the catalog controls they relate to."""

    def __init__(self, catalog: ControlCatalog, config: Optional[MatchConfig] = None):
        self.catalog = catalog
        self.config = config or MatchConfig()

    def match(self, finding: Finding, config: Optional[MatchConfig] = None) -> MatchResult:
        """
        Rank catalog controls for a finding.

        Args:
            finding: Finding to map
            config: Ranking options; defaults to the engine's config

        Returns:
            MatchResult sorted by blended score descending, ties broken by
            control id. Empty when the finding has no embedding and no tags,
            or the catalog is empty.

        Raises:
            DimensionMismatch: If the finding embedding length differs from
                the catalog's embeddings.
        """
        config = config or self.config

        if not finding.has_signal:
            logger.debug("Finding %s carries no embedding or tags; left unmapped", finding.id)
            return MatchResult(finding_id=finding.id)

        candidates = self.catalog.query(finding.embedding, finding.tags)
        if not candidates:
            logger.debug("Catalog is empty; finding %s left unmapped", finding.id)
            return MatchResult(finding_id=finding.id)

        ranked = []
        for candidate in candidates:
            score = (config.weight_semantic * candidate.semantic_score
                     + config.weight_tag * candidate.tag_score)
            if score < config.min_score:
                continue
            ranked.append(ControlMatch(
                control_id=candidate.control_id,
                score=score,
                semantic_score=candidate.semantic_score,
                tag_score=candidate.tag_score,
            ))

        ranked.sort(key=lambda match: (-match.score, match.control_id))
        result = MatchResult(finding_id=finding.id, matches=tuple(ranked[:config.top_k]))

        logger.debug(
            "Finding %s: %d of %d controls above %.2f, kept %d",
            finding.id, len(ranked), len(candidates), config.min_score, len(result),
        )
        return result
