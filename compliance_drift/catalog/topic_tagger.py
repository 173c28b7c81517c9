"""
Topic tagging for findings that arrive with an embedding but no tags.

Each control topic carries its own embedding; a finding is tagged with the
slugs of the topics closest to it, which lets it take part in tag-overlap
matching against the catalog.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.exceptions import InvalidConfig
from ..core.models import Embedding, Finding, as_embedding
from ..core.vector_math import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ControlTopic:
    """A topic that groups controls, e.g. ``access-control``."""
    slug: str
    label: str
    embedding: Embedding
    description: Optional[str] = None

    def __post_init__(self):
        vector = as_embedding(self.embedding)
        if vector is None:
            raise ValueError(f"Topic {self.slug!r} requires an embedding")
        object.__setattr__(self, "embedding", vector)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControlTopic":
        return cls(
            slug=data["slug"],
            label=data.get("label", data["slug"]),
            embedding=data["embedding"],
            description=data.get("description"),
        )


class TopicTagger:
    """Assign the top-N closest topics to an embedding."""

    def __init__(self, topics: Iterable[ControlTopic], top_n: int = 3):
        if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n <= 0:
            raise InvalidConfig(f"top_n must be a positive integer, got {top_n!r}")
        self.topics: List[ControlTopic] = list(topics)
        self.top_n = top_n

    def tag(self, embedding: Sequence[float]) -> List[str]:
        """Return topic slugs ordered by similarity, ties broken by slug."""
        scored = sorted(
            ((cosine_similarity(topic.embedding, embedding), topic.slug) for topic in self.topics),
            key=lambda item: (-item[0], item[1]),
        )
        return [slug for _, slug in scored[:self.top_n]]

    def enrich(self, finding: Finding) -> Finding:
        """
        Add topic tags to a finding that has an embedding.

        Existing tags are kept; findings without an embedding are returned
        unchanged.
        """
        if finding.embedding is None or not self.topics:
            return finding
        slugs = self.tag(finding.embedding)
        logger.debug("Tagged finding %s with topics %s", finding.id, slugs)
        return replace(finding, tags=finding.tags | frozenset(slugs))
