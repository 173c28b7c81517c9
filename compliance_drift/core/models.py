"""
Core data models shared by the catalog, matching and drift components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

Embedding = Tuple[float, ...]


class Severity(Enum):
    """Finding severity levels"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def parse(cls, value: Any) -> Optional["Severity"]:
        """Parse a severity from an enum member or a case-insensitive string."""
        if value is None or isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown severity: {value!r}") from None


class ControlStatus(Enum):
    """Aggregate status of a control within one scan run"""
    SATISFIED = "satisfied"
    VIOLATED = "violated"
    UNKNOWN = "unknown"


def as_embedding(values: Optional[Iterable[float]]) -> Optional[Embedding]:
    if values is None:
        return None
    vector = tuple(float(v) for v in values)
    return vector or None


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class Control:
    """A canonical control from a regulatory or compliance framework."""
    control_id: str
    framework: str
    title: str
    description: str = ""
    embedding: Optional[Embedding] = None
    topic_tags: FrozenSet[str] = field(default_factory=frozenset)
    mapped_controls: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "description", self.description or "")
        object.__setattr__(self, "embedding", as_embedding(self.embedding))
        object.__setattr__(self, "topic_tags", frozenset(self.topic_tags))
        object.__setattr__(self, "mapped_controls", frozenset(self.mapped_controls))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Control":
        control_id = _pick(data, "control_id", "controlId")
        if control_id is None:
            raise KeyError("control_id")
        return cls(
            control_id=str(control_id),
            framework=_pick(data, "framework", default=""),
            title=_pick(data, "title", default=""),
            description=_pick(data, "description", default=""),
            embedding=_pick(data, "embedding"),
            topic_tags=_pick(data, "topic_tags", "topicTags", "tags", default=()),
            mapped_controls=_pick(data, "mapped_controls", "mappedControls", default=()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "control_id": self.control_id,
            "framework": self.framework,
            "title": self.title,
            "description": self.description,
            "embedding": list(self.embedding) if self.embedding else None,
            "topic_tags": sorted(self.topic_tags),
            "mapped_controls": sorted(self.mapped_controls),
        }


@dataclass(frozen=True)
class Finding:
    """A single observation from a compliance or dependency scan."""
    id: str
    category: str
    description: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)
    embedding: Optional[Embedding] = None
    project_id: Optional[str] = None
    scan_run_id: Optional[str] = None
    severity: Optional[Severity] = None

    def __post_init__(self):
        object.__setattr__(self, "embedding", as_embedding(self.embedding))
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "severity", Severity.parse(self.severity))

    @property
    def has_signal(self) -> bool:
        """Whether the finding carries anything the matcher can use."""
        return self.embedding is not None or bool(self.tags)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            id=str(data["id"]),
            category=_pick(data, "category", "rule", default=""),
            description=_pick(data, "description", default=""),
            tags=_pick(data, "tags", default=()),
            embedding=_pick(data, "embedding"),
            project_id=_text(_pick(data, "project_id", "projectId")),
            scan_run_id=_text(_pick(data, "scan_run_id", "scanRunId")),
            severity=_pick(data, "severity"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "tags": sorted(self.tags),
            "embedding": list(self.embedding) if self.embedding else None,
            "project_id": self.project_id,
            "scan_run_id": self.scan_run_id,
            "severity": self.severity.value if self.severity else None,
        }
