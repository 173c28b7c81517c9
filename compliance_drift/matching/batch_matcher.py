"""
Parallel matching of a scan run's findings.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..core.models import Finding
from .match_engine import MatchConfig, MatchEngine, MatchResult

logger = logging.getLogger(__name__)


@dataclass
class BatchMatchResult:
    """Results of a batch, sorted by finding id."""
    results: List[MatchResult] = field(default_factory=list)
    requested: int = 0
    pending_finding_ids: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def completed(self) -> int:
        return len(self.results)

    @property
    def partial(self) -> bool:
        """True when the deadline expired before every finding was matched."""
        return bool(self.pending_finding_ids)

    def by_finding(self) -> Dict[str, MatchResult]:
        return {result.finding_id: result for result in self.results}


class BatchMatcher:
    """
    Match many findings concurrently against a shared catalog.

    Findings are independent, so they are fanned out to a thread pool and
    collected once all of them finish or the timeout expires.
    """

    def __init__(self, engine: MatchEngine, max_workers: int = 4):
        self.engine = engine
        self.max_workers = max(1, max_workers)

    def match_all(
            self,
            findings: Sequence[Finding],
            config: Optional[MatchConfig] = None,
            timeout: Optional[float] = None
    ) -> BatchMatchResult:
        """
        Match a batch of findings.

        Args:
            findings: Findings of one scan run
            config: Ranking options shared by the batch
            timeout: Seconds to wait before abandoning unfinished findings

        Returns:
            BatchMatchResult whose ``partial`` flag and ``pending_finding_ids``
            describe anything left unmatched when the timeout expired.

        Raises:
            InvalidConfig: Before any work, when ``config`` is invalid.
            DimensionMismatch: When any finding fails to match.
        """
        config = config or self.engine.config
        started = time.monotonic()

        if not findings:
            return BatchMatchResult()

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(findings)),
            thread_name_prefix="match",
        )
        try:
            futures = {
                executor.submit(self.engine.match, finding, config): (index, finding)
                for index, finding in enumerate(findings)
            }
            done, not_done = wait(futures, timeout=timeout)
            finished = [(future.result(), futures[future][0]) for future in done]
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        # duplicate finding ids keep their submission order
        finished.sort(key=lambda item: (item[0].finding_id, item[1]))
        results = [result for result, _ in finished]
        pending = sorted(futures[future][1].id for future in not_done)
        batch = BatchMatchResult(
            results=results,
            requested=len(findings),
            pending_finding_ids=pending,
            duration=time.monotonic() - started,
        )

        if batch.partial:
            logger.warning(
                "Batch deadline reached: matched %d of %d findings",
                batch.completed, batch.requested,
            )
        else:
            logger.info("Matched %d findings in %.3fs", batch.completed, batch.duration)
        return batch
