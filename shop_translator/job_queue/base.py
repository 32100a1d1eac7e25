"""
Job Queue Base
==============
Interface, errors and the shared worker loop for queue backends.

Backends only implement storage (``_store``, ``_pop``, ``_save``, ``_load``,
``_list``, ``_delete``, ``_counts``); execution, retries with exponential
backoff and progress reporting live here so both backends behave the same.
"""
import json
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from shop_translator.config import config
from shop_translator.config.constants import JobState
from shop_translator.config.settings import QueueConfig
from shop_translator.models.translation import TranslationJob
from shop_translator.utils.logging import get_logger, job_logger
from shop_translator.utils.retry import RetryPolicy


class QueueError(Exception):
    """Base class for queue errors."""


class QueueConnectionError(QueueError):
    """The queue backend cannot be reached."""


class JobPayloadError(QueueError):
    """A job payload failed validation and was not enqueued."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid job payload: " + "; ".join(self.errors))


class TerminalJobError(QueueError):
    """A job failure that retrying cannot fix."""


class ResourceNotFoundError(TerminalJobError):
    """The resource a job refers to does not exist."""


class CrossEnvironmentError(TerminalJobError):
    """The resource belongs to a different shop than the job."""


@dataclass
class JobContext:
    """What a processor receives for one execution."""
    job: TranslationJob
    update_progress: Callable[[int], None]

    @property
    def data(self) -> Dict[str, Any]:
        return self.job.data


Handler = Callable[[JobContext], Any]
ConnectionErrorCallback = Callable[['JobQueue', Exception], None]

FINISHED_STATES = (JobState.COMPLETED, JobState.FAILED)


class JobQueue(ABC):
    """Common interface of every queue backend."""

    mode: str = 'abstract'

    @abstractmethod
    def enqueue(self, name: str, data: Dict[str, Any], max_attempts: int = None, delay: float = 0.0) -> TranslationJob:
        ...

    @abstractmethod
    def register_processor(self, name: str, concurrency: int, handler: Handler) -> None:
        ...

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[TranslationJob]:
        ...

    @abstractmethod
    def stats(self) -> Dict[str, int]:
        ...

    @abstractmethod
    def clean(self, state: JobState, grace: float = 0.0) -> int:
        ...

    @abstractmethod
    def start(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def ping(self) -> bool:
        ...


class BaseJobQueue(JobQueue):
    """Worker threads, retry and progress shared by all backends."""

    def __init__(
        self,
        name: str = None,
        settings: QueueConfig = None,
        on_connection_error: ConnectionErrorCallback = None
    ):
        self.settings = settings or config.queue
        self.name = name or self.settings.name
        self.on_connection_error = on_connection_error
        self.retry_policy = RetryPolicy(self.settings.backoff_delay, self.settings.max_backoff_delay)
        self.logger = get_logger().queue_logger

        self._processors: Dict[str, Tuple[int, Handler]] = {}
        self._threads: List[threading.Thread] = []
        self._stop = threading.Event()
        self._started = False
        self._start_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Storage hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _store(self, job: TranslationJob) -> None:
        """Persist a new or rescheduled job and make it available to workers."""

    @abstractmethod
    def _pop(self, name: str, timeout: float) -> Optional[TranslationJob]:
        """Claim the next due job of one type, or None after ``timeout``."""

    @abstractmethod
    def _save(self, job: TranslationJob) -> None:
        """Persist state changes of a claimed job."""

    @abstractmethod
    def _load(self, job_id: str) -> Optional[TranslationJob]:
        ...

    @abstractmethod
    def _list(self, state: JobState) -> List[TranslationJob]:
        ...

    @abstractmethod
    def _delete(self, job: TranslationJob) -> None:
        ...

    @abstractmethod
    def _counts(self) -> Dict[JobState, int]:
        ...

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, name: str, data: Dict[str, Any], max_attempts: int = None, delay: float = 0.0) -> TranslationJob:
        """
        Add a job.

        Args:
            name: Job type; a processor must be registered for it to run
            data: JSON-serializable payload
            max_attempts: Attempts before the job fails (uses config if not specified)
            delay: Seconds before the job becomes available

        Raises:
            JobPayloadError: the payload is not JSON-serializable
            QueueConnectionError: the backend is unreachable
        """
        try:
            payload = json.loads(json.dumps(data))
        except (TypeError, ValueError) as e:
            raise JobPayloadError([f"payload is not JSON-serializable: {e}"]) from e

        job = TranslationJob(
            name=name,
            data=payload,
            max_attempts=max_attempts or self.settings.max_attempts
        )
        if delay and delay > 0:
            job.state = JobState.DELAYED
            job.run_at = job.created_at + delay
        self._store(job)
        self.logger.debug(f"Enqueued {name} job {job.id} ({self.mode}, delay={delay or 0}s)")
        return job

    def register_processor(self, name: str, concurrency: int, handler: Handler) -> None:
        with self._start_lock:
            self._processors[name] = (max(1, int(concurrency)), handler)
            if self._started:
                self._spawn_workers(name)

    def start(self) -> None:
        with self._start_lock:
            if self._started:
                return
            self._started = True
            for name in self._processors:
                self._spawn_workers(name)
        self.logger.info(f"{self.mode} queue '{self.name}' started: {self.describe_processors()}")

    def close(self) -> None:
        self._stop.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout=self.settings.poll_interval * 2)
        self._threads = []

    def get_job(self, job_id: str) -> Optional[TranslationJob]:
        return self._load(job_id)

    def stats(self) -> Dict[str, int]:
        counts = self._counts()
        result = {state.value: counts.get(state, 0) for state in JobState}
        result['total'] = sum(result.values())
        return result

    def clean(self, state: JobState, grace: float = 0.0) -> int:
        """Remove finished jobs in ``state`` that finished more than ``grace`` seconds ago."""
        state = JobState(state)
        if state not in FINISHED_STATES:
            raise ValueError(f"Only finished jobs can be cleaned, not '{state.value}'")
        cutoff = time.time() - grace
        removed = 0
        for job in self._list(state):
            if (job.finished_at or 0) <= cutoff:
                self._delete(job)
                removed += 1
        if removed:
            self.logger.info(f"Cleaned {removed} {state.value} job(s)")
        return removed

    def describe_processors(self) -> str:
        return ', '.join(f"{name} x{concurrency}" for name, (concurrency, _) in self._processors.items()) or 'none'

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _spawn_workers(self, name: str) -> None:
        concurrency, _ = self._processors[name]
        for index in range(concurrency):
            thread = threading.Thread(
                target=self._worker_loop,
                args=(name,),
                name=f"{self.mode}-{name}-{index}",
                daemon=True
            )
            thread.start()
            self._threads.append(thread)

    def _worker_loop(self, name: str) -> None:
        while not self._stop.is_set():
            try:
                job = self._pop(name, self.settings.poll_interval)
                if job is not None:
                    self._execute(job)
            except QueueConnectionError as e:
                self.logger.error(f"{self.mode} worker for {name} lost the backend: {e}")
                if self.on_connection_error:
                    self.on_connection_error(self, e)
                self._stop.wait(self.settings.poll_interval)

    def _execute(self, job: TranslationJob) -> None:
        _, handler = self._processors[job.name]
        log = job_logger(self.logger, job.id, job.name)

        job.state = JobState.ACTIVE
        job.attempts += 1
        job.processed_at = time.time()
        self._save(job)
        log.info(f"Started (attempt {job.attempts}/{job.max_attempts})")

        context = JobContext(job=job, update_progress=lambda progress: self._update_progress(job, progress))
        try:
            result = handler(context)
        except TerminalJobError as e:
            log.error(f"Failed permanently: {e}")
            self._fail(job, f"{type(e).__name__}: {e}")
        except QueueConnectionError:
            raise
        except Exception as e:
            log.error(f"Attempt {job.attempts} failed: {e}", exc_info=True)
            if job.attempts < job.max_attempts:
                self._retry(job, str(e))
            else:
                self._fail(job, str(e))
        else:
            job.state = JobState.COMPLETED
            job.progress = 100
            job.finished_at = time.time()
            job.result = result
            job.failed_reason = None
            self._save(job)
            log.info("Completed")

    def _update_progress(self, job: TranslationJob, progress: int) -> None:
        job.progress = max(0, min(100, int(progress)))
        self._save(job)

    def _retry(self, job: TranslationJob, reason: str) -> None:
        delay = self.retry_policy.delay(job.attempts - 1)
        job.state = JobState.DELAYED
        job.run_at = time.time() + delay
        job.failed_reason = reason
        self._store(job)
        self.logger.info(f"Job {job.id} retrying in {delay:.1f}s")

    def _fail(self, job: TranslationJob, reason: str) -> None:
        job.state = JobState.FAILED
        job.finished_at = time.time()
        job.failed_reason = reason
        self._save(job)
