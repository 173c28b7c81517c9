"""
In-memory control catalog.

Controls are scanned linearly per query, which is fine for a compliance
taxonomy of a few hundred to low thousands of controls. Topic tags are kept
in an inverted index so tag overlap does not require set intersections
against every entry.
"""

import logging
import threading
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..core.exceptions import ControlNotFound, DimensionMismatch
from ..core.models import Control
from ..core.vector_math import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogCandidate:
    """A catalog entry with its raw scores against one query."""
    control: Control
    semantic_score: float
    tag_score: float

    @property
    def control_id(self) -> str:
        return self.control.control_id


class ControlCatalog:
    """
    Thread-safe index over canonical controls.

    Upserts replace the whole (immutable) control under a lock, so readers
    see either the previous or the new entry, never a mix of fields.
    """

    def __init__(self, controls: Iterable[Control] = ()):
        self._lock = threading.RLock()
        self._controls: Dict[str, Control] = {}
        self._tag_index: Dict[str, Set[str]] = defaultdict(set)
        self._dimensions: Counter = Counter()
        self.upsert_many(controls)

    def __len__(self) -> int:
        with self._lock:
            return len(self._controls)

    def __contains__(self, control_id: object) -> bool:
        with self._lock:
            return control_id in self._controls

    def __iter__(self) -> Iterator[Control]:
        return iter(self.snapshot())

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimensionality shared by the catalog, if any control has one."""
        with self._lock:
            if not self._dimensions:
                return None
            return next(iter(self._dimensions))

    def upsert(self, control: Control) -> None:
        """
        Insert a control or replace the entry with the same id.

        Raises:
            DimensionMismatch: If the control's embedding length differs from
                the other embedded controls in the catalog.
        """
        with self._lock:
            previous = self._controls.get(control.control_id)
            if control.embedding is not None:
                self._check_dimension(len(control.embedding), previous)

            if previous is not None:
                self._unindex(previous)
            self._controls[control.control_id] = control
            self._index(control)

        logger.debug(
            "%s control %s (%s)",
            "Updated" if previous is not None else "Added",
            control.control_id,
            control.framework,
        )

    def upsert_many(self, controls: Iterable[Control]) -> int:
        """Upsert several controls; returns how many were processed."""
        count = 0
        for control in controls:
            self.upsert(control)
            count += 1
        return count

    def remove(self, control_id: str) -> Control:
        """Remove a control from the catalog and return it."""
        with self._lock:
            control = self._controls.pop(control_id, None)
            if control is None:
                raise ControlNotFound(control_id)
            self._unindex(control)
        logger.debug("Removed control %s", control_id)
        return control

    def by_id(self, control_id: str) -> Control:
        """
        Look up a control by id.

        Raises:
            ControlNotFound: If no control has this id.
        """
        with self._lock:
            control = self._controls.get(control_id)
        if control is None:
            raise ControlNotFound(control_id)
        return control

    def get(self, control_id: str, default: Optional[Control] = None) -> Optional[Control]:
        with self._lock:
            return self._controls.get(control_id, default)

    def snapshot(self) -> Tuple[Control, ...]:
        """Consistent copy of all entries in insertion order."""
        with self._lock:
            return tuple(self._controls.values())

    def controls_with_tag(self, tag: str) -> List[Control]:
        """Controls carrying a topic tag, sorted by id."""
        with self._lock:
            ids = sorted(self._tag_index.get(tag, ()))
            return [self._controls[control_id] for control_id in ids]

    def query(
            self,
            embedding: Optional[Sequence[float]],
            tags: Iterable[str] = ()
    ) -> List[CatalogCandidate]:
        """
        Score every catalog entry against a query.

        Args:
            embedding: Query embedding, or None for tag-only matching
            tags: Query tags

        Returns:
            Unranked candidates for all entries. Entries without an embedding
            (or any entry, when no query embedding is given) get a semantic
            score of 0 and compete on tag overlap alone.

        Raises:
            DimensionMismatch: If the query embedding length differs from the
                catalog's embeddings.
        """
        query_tags = frozenset(tags)
        overlap: Counter = Counter()

        with self._lock:
            controls = tuple(self._controls.values())
            for tag in query_tags:
                for control_id in self._tag_index.get(tag, ()):
                    overlap[control_id] += 1

        candidates = []
        for control in controls:
            semantic_score = 0.0
            if embedding is not None and control.embedding is not None:
                semantic_score = cosine_similarity(embedding, control.embedding)

            shared = overlap.get(control.control_id, 0)
            union = len(control.topic_tags) + len(query_tags) - shared
            tag_score = shared / max(1, union)

            candidates.append(CatalogCandidate(control, semantic_score, tag_score))

        return candidates

    def _check_dimension(self, size: int, previous: Optional[Control]) -> None:
        dimensions = dict(self._dimensions)
        if previous is not None and previous.embedding is not None:
            replaced = len(previous.embedding)
            dimensions[replaced] -= 1
            if dimensions[replaced] <= 0:
                del dimensions[replaced]
        for existing in dimensions:
            if existing != size:
                raise DimensionMismatch(expected=existing, actual=size)

    def _index(self, control: Control) -> None:
        for tag in control.topic_tags:
            self._tag_index[tag].add(control.control_id)
        if control.embedding is not None:
            self._dimensions[len(control.embedding)] += 1

    def _unindex(self, control: Control) -> None:
        for tag in control.topic_tags:
            ids = self._tag_index.get(tag)
            if ids is None:
                continue
            ids.discard(control.control_id)
            if not ids:
                del self._tag_index[tag]
        if control.embedding is not None:
            size = len(control.embedding)
            self._dimensions[size] -= 1
            if self._dimensions[size] <= 0:
                del self._dimensions[size]
