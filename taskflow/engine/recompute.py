"""Periodic priority recompute.

Scores drift as tasks age and deadlines approach, so a background pass
recomputes every active (not done) task. The pass walks tasks in bounded
chunks by id (keyset pagination), writes back only scores that moved by at
least the materiality threshold, and checks a cancellation event between
chunks.

Interactive recomputes (bump, edit) may race with the pass; last writer wins
on the cached score.
"""

import logging
import threading
from typing import Dict, Optional

from pydantic import BaseModel

from taskflow.engine.clock import Clock, SystemClock
from taskflow.engine.ports import TaskStore
from taskflow.engine.priority import calculate_score

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 3 * 60 * 60
DEFAULT_CHUNK_SIZE = 200
DEFAULT_MATERIALITY_THRESHOLD = 1


class RecomputeResult(BaseModel):
    scanned: int = 0
    updated: int = 0
    skipped: int = 0
    cancelled: bool = False


class PriorityRecomputeScheduler:
    """Batch recompute of cached priority scores.

    Usage:
        scheduler = PriorityRecomputeScheduler(TaskRepository(db), clock=SystemClock())
        scheduler.start()
        ...
        scheduler.stop()

    ``run_once`` can also be called directly (tests, cron-style jobs).
    """

    def __init__(
        self,
        task_store: TaskStore,
        *,
        clock: Clock = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        materiality_threshold: int = DEFAULT_MATERIALITY_THRESHOLD,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.task_store = task_store
        self.clock = clock or SystemClock()
        self.interval_seconds = interval_seconds
        self.chunk_size = chunk_size
        self.materiality_threshold = max(0, materiality_threshold)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_settings(cls, task_store: TaskStore, settings=None, clock: Clock = None) -> "PriorityRecomputeScheduler":
        """Build a scheduler from ``TASKFLOW_RECOMPUTE_*`` settings."""
        if settings is None:
            from taskflow.config import get_settings

            settings = get_settings()
        return cls(
            task_store,
            clock=clock,
            interval_seconds=settings.recompute_interval_sec,
            chunk_size=settings.recompute_chunk_size,
            materiality_threshold=settings.recompute_min_delta,
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, cancel_event: Optional[threading.Event] = None) -> RecomputeResult:
        """Recompute every active task once.

        Args:
            cancel_event: Checked between chunks; when set the pass stops early
                and the result is marked cancelled

        Returns:
            Counts of scanned, written and skipped tasks
        """
        result = RecomputeResult()
        now = self.clock.now()
        after_id = None

        while True:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info(f"Priority recompute cancelled after {result.scanned} task(s)")
                break

            chunk = self.task_store.list_active_chunk(after_id=after_id, limit=self.chunk_size)
            if not chunk:
                break

            changed: Dict[str, int] = {}
            for task in chunk:
                score = calculate_score(task, now)
                if abs(score - task.priority_score) >= self.materiality_threshold and score != task.priority_score:
                    changed[task.id] = score
            if changed:
                self.task_store.update_priority_scores(changed, now)

            result.scanned += len(chunk)
            result.updated += len(changed)
            result.skipped += len(chunk) - len(changed)
            after_id = chunk[-1].id

            if len(chunk) < self.chunk_size:
                break

        logger.debug(
            f"Priority recompute: scanned={result.scanned} updated={result.updated} skipped={result.skipped}"
        )
        return result

    def start(self) -> None:
        """Start the recompute thread (daemon)."""
        if self.is_running:
            return
        logger.info(f"Starting priority recompute (every {self.interval_seconds}s, chunk {self.chunk_size})")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="priority-recompute")
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the recompute thread to stop and wait for it."""
        logger.info("Stopping priority recompute")
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_once(cancel_event=self._stop_event)
            except Exception as e:
                logger.error(f"Priority recompute cycle failed: {type(e).__name__}: {str(e)}")
            self._stop_event.wait(self.interval_seconds)
