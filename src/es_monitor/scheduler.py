"""Periodic sampling jobs and the shared metrics cache.

Each job runs on its own daemon thread and publishes into ``MetricsCache``.
The renderer only ever reads an immutable ``DashboardSnapshot`` copied out
under the cache lock, so it never sees a half-updated section.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from es_monitor.core.schemas import HealthIssue
from es_monitor.monitoring.health import sort_issues

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Everything the renderer needs for one frame.

    Attributes:
        sections: Section name -> latest published value
        issues: Merged health issues of all sections, severity ordered
        errors: Section name -> latest error message
        updated_at: Section name -> time of the last successful publish
    """

    sections: dict[str, Any] = field(default_factory=dict)
    issues: list[HealthIssue] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    updated_at: dict[str, datetime] = field(default_factory=dict)

    def get(self, section: str) -> Any:
        return self.sections.get(section)


class MetricsCache:
    """Lock-guarded, last-writer-wins store of the latest section values."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sections: dict[str, Any] = {}
        self._issues: dict[str, list[HealthIssue]] = {}
        self._errors: dict[str, str] = {}
        self._updated_at: dict[str, datetime] = {}

    def publish(
        self,
        section: str,
        value: Any,
        issues: list[HealthIssue] | None = None,
    ) -> None:
        """Replace a section's value and issues and clear its error."""
        with self._lock:
            self._sections[section] = value
            self._issues[section] = list(issues or [])
            self._errors.pop(section, None)
            self._updated_at[section] = datetime.now()

    def publish_error(self, section: str, message: str) -> None:
        """Record a failed update; the previous value stays visible."""
        with self._lock:
            self._errors[section] = message

    def snapshot(self) -> DashboardSnapshot:
        with self._lock:
            sections = dict(self._sections)
            issues = [issue for section_issues in self._issues.values() for issue in section_issues]
            errors = dict(self._errors)
            updated_at = dict(self._updated_at)
        return DashboardSnapshot(
            sections=sections,
            issues=sort_issues(issues),
            errors=errors,
            updated_at=updated_at,
        )


@dataclass
class _Job:
    name: str
    interval: float
    func: Callable[[], None]
    initial_delay: float = 0.0
    on_error: Callable[[str, Exception], None] | None = None
    thread: threading.Thread | None = None
    runs: int = 0
    failures: int = 0


class SamplingScheduler:
    """Runs registered jobs at fixed intervals on daemon threads.

    A job never overlaps itself: the next run starts ``interval`` seconds
    after the previous one started, or immediately if the run took longer.
    An exception in one job is logged and reported through its ``on_error``
    callback; the job and every other job keep ticking.

    Example:
        ```python
        scheduler = SamplingScheduler()
        scheduler.add_job("system", 2.0, sample_system)
        scheduler.start()
        ...
        scheduler.stop()
        ```
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._jobs: dict[str, _Job] = {}
        self._stop_event = threading.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def run_count(self, name: str) -> int:
        return self._jobs[name].runs

    def failure_count(self, name: str) -> int:
        return self._jobs[name].failures

    def add_job(
        self,
        name: str,
        interval: float,
        func: Callable[[], None],
        initial_delay: float = 0.0,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        """Register a periodic job.

        Args:
            name: Unique job name
            interval: Seconds between run starts
            func: Callable run on every tick
            initial_delay: Seconds to wait before the first run
            on_error: Called with (name, exception) when ``func`` raises

        Raises:
            ValueError: If the name is taken or the interval is not positive
            RuntimeError: If the scheduler is already running
        """
        if self._running:
            raise RuntimeError("Cannot add jobs to a running scheduler")
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        if interval <= 0:
            raise ValueError(f"Job interval must be positive, got {interval}")
        self._jobs[name] = _Job(
            name=name,
            interval=interval,
            func=func,
            initial_delay=max(0.0, initial_delay),
            on_error=on_error,
        )

    def start(self) -> None:
        if self._running:
            logger.warning("Scheduler already running")
            return
        self._stop_event.clear()
        self._running = True
        for job in self._jobs.values():
            job.thread = threading.Thread(
                target=self._run_job, args=(job,), name=f"job-{job.name}", daemon=True
            )
            job.thread.start()
        logger.debug(f"Scheduler started with jobs: {self.job_names}")

    def stop(self, timeout: float = 5.0) -> None:
        """Signal every job to stop and wait for their threads.

        A job in the middle of a run finishes that run first; HTTP requests
        carry their own timeout so this is bounded.
        """
        self._stop_event.set()
        for job in self._jobs.values():
            if job.thread is not None:
                job.thread.join(timeout=timeout)
                if job.thread.is_alive():
                    logger.warning(f"Job {job.name} did not stop within {timeout:.1f}s")
                job.thread = None
        self._running = False
        logger.debug("Scheduler stopped")

    def run_once(self, name: str) -> bool:
        """Run one job synchronously on the calling thread.

        Returns:
            True if the job completed without raising
        """
        return self._execute(self._jobs[name])

    def _execute(self, job: _Job) -> bool:
        job.runs += 1
        try:
            job.func()
            return True
        except Exception as e:
            job.failures += 1
            logger.warning(f"Job {job.name} failed: {e}")
            logger.debug(f"Job {job.name} traceback", exc_info=True)
            if job.on_error is not None:
                try:
                    job.on_error(job.name, e)
                except Exception:
                    logger.exception(f"Error callback for job {job.name} failed")
            return False

    def _run_job(self, job: _Job) -> None:
        if job.initial_delay and self._stop_event.wait(job.initial_delay):
            return
        while not self._stop_event.is_set():
            started = self._clock()
            self._execute(job)
            elapsed = self._clock() - started
            if self._stop_event.wait(max(0.0, job.interval - elapsed)):
                break
