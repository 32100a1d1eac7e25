"""
In-Memory Job Queue
===================
Single-process fallback used when Redis is unavailable. Jobs live only in
this process and are lost on restart.
"""
import heapq
import itertools
import threading
import time
from collections import defaultdict, deque
from typing import Dict, List, Optional, Tuple

from shop_translator.config.constants import JobState
from shop_translator.job_queue.base import BaseJobQueue
from shop_translator.models.translation import TranslationJob


class InMemoryJobQueue(BaseJobQueue):
    """Job queue backed by dicts, a ready deque per job type and a delay heap."""

    mode = 'memory'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._jobs: Dict[str, TranslationJob] = {}
        self._ready: Dict[str, deque] = defaultdict(deque)
        self._delayed: List[Tuple[float, int, str]] = []
        self._sequence = itertools.count()
        self._condition = threading.Condition()

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        self._stop.set()
        with self._condition:
            self._condition.notify_all()
        super().close()

    def _store(self, job: TranslationJob) -> None:
        with self._condition:
            self._jobs[job.id] = job
            if job.state == JobState.DELAYED:
                heapq.heappush(self._delayed, (job.run_at, next(self._sequence), job.id))
            else:
                job.state = JobState.WAITING
                self._ready[job.name].append(job.id)
            self._condition.notify_all()

    def _promote_due(self, now: float) -> None:
        while self._delayed and self._delayed[0][0] <= now:
            _, _, job_id = heapq.heappop(self._delayed)
            job = self._jobs.get(job_id)
            if job is not None and job.state == JobState.DELAYED:
                job.state = JobState.WAITING
                self._ready[job.name].append(job_id)

    def _pop(self, name: str, timeout: float) -> Optional[TranslationJob]:
        deadline = time.time() + timeout
        with self._condition:
            while not self._stop.is_set():
                now = time.time()
                self._promote_due(now)
                ready = self._ready[name]
                while ready:
                    job = self._jobs.get(ready.popleft())
                    if job is not None and job.state == JobState.WAITING:
                        # Claimed under the lock: no other worker can take it
                        job.state = JobState.ACTIVE
                        return job

                remaining = deadline - now
                if remaining <= 0:
                    return None
                if self._delayed:
                    remaining = min(remaining, max(self._delayed[0][0] - now, 0.01))
                self._condition.wait(remaining)
        return None

    def _save(self, job: TranslationJob) -> None:
        with self._condition:
            self._jobs[job.id] = job

    def _load(self, job_id: str) -> Optional[TranslationJob]:
        with self._condition:
            job = self._jobs.get(job_id)
            # Callers get a snapshot, never the object a worker is mutating
            return TranslationJob.from_record(job.to_record()) if job else None

    def _list(self, state: JobState) -> List[TranslationJob]:
        with self._condition:
            return [job for job in self._jobs.values() if job.state == state]

    def _delete(self, job: TranslationJob) -> None:
        with self._condition:
            self._jobs.pop(job.id, None)

    def _counts(self) -> Dict[JobState, int]:
        counts: Dict[JobState, int] = defaultdict(int)
        with self._condition:
            for job in self._jobs.values():
                counts[job.state] += 1
        return counts
