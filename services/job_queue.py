from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

JobCall = Tuple[Callable[..., Any], Tuple[Any, ...], Dict[str, Any]]


class BackgroundJobQueue:
    """One-shot keyed jobs on an APScheduler background scheduler.

    A key runs at most once at a time. Enqueueing a key that is already queued
    or running records one follow-up run with the latest arguments, started
    as soon as the current run returns. Jobs are detached from the caller:
    exceptions are logged here, so a job records its own outcome (e.g. a
    ``failed`` status on its row).
    """

    def __init__(self, max_workers: int = 2):
        self._scheduler = BackgroundScheduler(
            executors={"default": {"type": "threadpool", "max_workers": max_workers}},
            job_defaults={"misfire_grace_time": None, "coalesce": False},
            timezone="UTC",
        )
        self._scheduler.start()
        self._cond = threading.Condition()
        self._active: Dict[str, JobCall] = {}
        self._followups: Dict[str, JobCall] = {}
        self._closed = False

    def enqueue(self, key: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """Schedule ``fn`` under ``key``.

        Returns True when a new run was scheduled, False when the call was
        folded into a follow-up of the run already holding the key.
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("job queue is shut down")
            if key in self._active:
                self._followups[key] = (fn, args, kwargs)
                logger.debug("background_job_followup", extra={"job_key": key})
                return False
            self._active[key] = (fn, args, kwargs)
        self._scheduler.add_job(self._run, args=(key,), name=key)
        return True

    def _run(self, key: str) -> None:
        while True:
            with self._cond:
                fn, args, kwargs = self._active[key]
            try:
                fn(*args, **kwargs)
            except Exception as exc:
                logger.exception("background_job_failed", extra={"job_key": key, "error": str(exc)})
            with self._cond:
                followup = self._followups.pop(key, None)
                if followup is None:
                    del self._active[key]
                    self._cond.notify_all()
                    return
                self._active[key] = followup

    def is_pending(self, key: str) -> bool:
        with self._cond:
            return key in self._active

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until no key is queued or running. Returns True if that happened in time."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._active, timeout=timeout)

    def shutdown(self, wait_for_jobs: bool = True) -> None:
        with self._cond:
            self._closed = True
        if wait_for_jobs:
            self.join()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait_for_jobs)
