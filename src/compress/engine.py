"""Run file jobs in parallel under a fixed core budget."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator

from .config import RunSettings
from .context import RunContext
from .errors import BzbatchError
from .job import FileJob
from .models import JobSpec, ScanError
from .scanner import scan

logger = logging.getLogger(__name__)

JobFactory = Callable[[JobSpec, RunSettings, RunContext], FileJob]


class Gate:
    """Counting admission gate that records how many holders it has had at once."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("gate capacity must be at least 1")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @contextmanager
    def slot(self) -> Iterator[None]:
        self._semaphore.acquire()
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)
        try:
            yield
        finally:
            with self._lock:
                self._active -= 1
            self._semaphore.release()

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak


class Dispatcher:
    """Feed scanner output to gated workers and fold failures into one status."""

    def __init__(
        self,
        settings: RunSettings,
        context: RunContext,
        *,
        job_factory: JobFactory = FileJob,
    ) -> None:
        self.settings = settings
        self.context = context
        self.cores = settings.resolved_cores()
        self.gate = Gate(self.cores)
        self._job_factory = job_factory

    def run(self, paths: Iterable[str]) -> int:
        """Process every path and return the process exit status."""

        logger.debug("Dispatching with %d core(s)", self.cores)
        futures: Dict[Future, JobSpec] = {}
        with ThreadPoolExecutor(max_workers=self.cores, thread_name_prefix="bzbatch-job") as executor:
            for item in scan(paths, mode=self.settings.mode, recursive=self.settings.recursive):
                if isinstance(item, ScanError):
                    self.context.fail(item.path, item.error)
                    continue
                futures[executor.submit(self._run_job, item)] = item

            for completed in as_completed(futures):
                spec = futures[completed]
                try:
                    completed.result()
                except Exception as exc:
                    logger.debug("Unexpected error in job for %s", spec.input_path, exc_info=True)
                    self.context.fail(spec.input_path, exc)

        logger.debug("All %d job(s) finished; peak concurrency %d", len(futures), self.gate.peak)
        return self.context.exit_code

    def _run_job(self, spec: JobSpec) -> None:
        with self.gate.slot():
            job = self._job_factory(spec, self.settings, self.context)
            try:
                job.run()
            except (BzbatchError, OSError) as exc:
                self.context.fail(spec.input_path, exc)
