"""
Append-only scan summary history and the per-project drift lifecycle.

The persistence layer owns durable storage; this keeps the in-process view a
caller needs to pick the right baseline and know where a project stands.
"""

import threading
from collections import defaultdict
from typing import Dict, List, Optional

from ..core.logger import get_scan_logger
from .drift_analyzer import DriftAnalyzer, DriftReport, DriftState
from .scan_summary import ScanSummary


class ScanHistory:
    """Summaries per project in the order they were recorded."""

    def __init__(self):
        self._lock = threading.Lock()
        self._summaries: Dict[str, List[ScanSummary]] = defaultdict(list)

    def record(self, summary: ScanSummary) -> None:
        """
        Append a summary as the project's newest baseline.

        Raises:
            ValueError: If its version does not follow the latest recorded one.
        """
        with self._lock:
            summaries = self._summaries[summary.project_id]
            if summaries and summary.version <= summaries[-1].version:
                raise ValueError(
                    f"Summary {summary.name} does not supersede {summaries[-1].name}"
                )
            summaries.append(summary)

    def latest(self, project_id: str) -> Optional[ScanSummary]:
        with self._lock:
            summaries = self._summaries.get(project_id)
            return summaries[-1] if summaries else None

    def history(self, project_id: str) -> List[ScanSummary]:
        with self._lock:
            return list(self._summaries.get(project_id, ()))

    def next_version(self, project_id: str) -> int:
        latest = self.latest(project_id)
        return latest.version + 1 if latest else 1


class DriftTracker:
    """
    Track drift across successive scans of each project.

    A project starts in ``no_baseline``; its first summary becomes the
    baseline, and every later summary is compared against the latest one
    (``drifted`` or ``stable``) before replacing it as the baseline.
    """

    def __init__(self, history: Optional[ScanHistory] = None, analyzer: Optional[DriftAnalyzer] = None):
        self.history = history or ScanHistory()
        self.analyzer = analyzer or DriftAnalyzer()
        self._states: Dict[str, DriftState] = {}
        self._project_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._lock = threading.Lock()

    def state(self, project_id: str) -> DriftState:
        with self._lock:
            return self._states.get(project_id, DriftState.NO_BASELINE)

    def _project_lock(self, project_id: str) -> threading.Lock:
        with self._lock:
            return self._project_locks[project_id]

    def track(self, summary: ScanSummary) -> DriftReport:
        """
        Compare a new summary against the project's baseline, then record it.

        Runs of the same project are tracked one at a time so each is compared
        against the summary recorded immediately before it.
        """
        logger = get_scan_logger(summary.project_id, summary.scan_run_id)
        with self._project_lock(summary.project_id):
            baseline = self.history.latest(summary.project_id)
            report = self.analyzer.analyze(summary, baseline)
            self.history.record(summary)

            with self._lock:
                self._states[summary.project_id] = report.state

        logger.info(report.summary)
        return report
