"""
Queue Supervisor
================
Chooses the queue backend and fails over between them.

At startup a Redis queue is built and pinged; if that fails the in-memory
queue is used instead. A connectivity error during operation (enqueue,
worker loop, lookups) switches to the in-memory queue once. Jobs still held
by the unreachable Redis are not recovered.

While on the fallback a daemon thread checks Redis and records when it is
reachable again. Switching back is explicit through ``reinitialize()``.
"""
import threading
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from shop_translator.config import config
from shop_translator.config.constants import JobState
from shop_translator.config.settings import QueueConfig, RedisConfig
from shop_translator.job_queue.base import Handler, JobQueue, QueueConnectionError
from shop_translator.job_queue.memory_queue import InMemoryJobQueue
from shop_translator.job_queue.redis_queue import RedisJobQueue, create_redis_client
from shop_translator.models.translation import TranslationJob
from shop_translator.services.cache_service import TranslationCache, get_cache
from shop_translator.services.rate_limiter import RequestRateLimiter, get_rate_limiter
from shop_translator.utils.logging import get_logger


class QueueRuntime:
    """Process-wide state shared by every job: active queue, processors, limiter and cache."""

    def __init__(self, rate_limiter: RequestRateLimiter = None, cache: TranslationCache = None):
        self.lock = threading.RLock()
        self.active: Optional[JobQueue] = None
        self.processors: Dict[str, Tuple[int, Handler]] = {}
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.failed_over = False
        self.backend_recovered = False
        self.last_failover_reason: Optional[str] = None


class QueueSupervisor:
    """Owns the active queue and moves work to the fallback when Redis fails."""

    def __init__(
        self,
        settings: QueueConfig = None,
        redis_settings: RedisConfig = None,
        redis_factory: Callable[[RedisConfig], redis.Redis] = None,
        runtime: QueueRuntime = None
    ):
        self.settings = settings or config.queue
        self.redis_settings = redis_settings or config.redis
        self.redis_factory = redis_factory or create_redis_client
        self.runtime = runtime or QueueRuntime()
        self.logger = get_logger().queue_logger

        self._started = False
        self._health_stop = threading.Event()
        self._health_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, start: bool = False) -> JobQueue:
        """Build the active queue if there is none yet."""
        with self.runtime.lock:
            if self.runtime.active is None:
                queue = self._build_durable()
                if queue is None:
                    queue = self._build_fallback()
                    self.logger.warning("Using in-memory queue; jobs will not survive a restart")
                    self._start_health_checks()
                else:
                    self.logger.info(f"Using Redis queue '{queue.prefix}'")
                self._install(queue)
            queue = self.runtime.active
        if start:
            self.start()
        return queue

    def start(self) -> None:
        queue = self.initialize()
        self._started = True
        queue.start()

    def shutdown(self) -> None:
        self._health_stop.set()
        with self.runtime.lock:
            queue = self.runtime.active
            self.runtime.active = None
            self._started = False
        if queue is not None:
            queue.close()
        self.logger.info("Queue supervisor stopped")

    @property
    def queue(self) -> JobQueue:
        return self.runtime.active or self.initialize()

    @property
    def mode(self) -> str:
        queue = self.runtime.active
        return queue.mode if queue is not None else 'uninitialized'

    def _build_durable(self) -> Optional[RedisJobQueue]:
        if not self.redis_settings.enabled:
            self.logger.info("Redis disabled by configuration")
            return None
        try:
            client = self.redis_factory(self.redis_settings)
            queue = RedisJobQueue(
                client,
                settings=self.settings,
                on_connection_error=self._on_connection_error,
                key_prefix=self.redis_settings.key_prefix
            )
            queue.ping()
            return queue
        except (QueueConnectionError, redis.exceptions.RedisError) as e:
            self.logger.warning(f"Redis unavailable, falling back to memory: {e}")
            return None

    def _build_fallback(self) -> InMemoryJobQueue:
        return InMemoryJobQueue(settings=self.settings)

    def _install(self, queue: JobQueue) -> None:
        # Caller holds the runtime lock
        for name, (concurrency, handler) in self.runtime.processors.items():
            queue.register_processor(name, concurrency, handler)
        self.runtime.active = queue
        if self._started:
            queue.start()

    # ------------------------------------------------------------------
    # Queue operations
    # ------------------------------------------------------------------

    def register_processor(self, name: str, concurrency: int, handler: Handler) -> None:
        with self.runtime.lock:
            self.runtime.processors[name] = (concurrency, handler)
            if self.runtime.active is not None:
                self.runtime.active.register_processor(name, concurrency, handler)

    def enqueue(self, name: str, data: Dict[str, Any], max_attempts: int = None, delay: float = 0.0) -> TranslationJob:
        return self._with_failover(lambda queue: queue.enqueue(name, data, max_attempts=max_attempts, delay=delay))

    def get_job(self, job_id: str) -> Optional[TranslationJob]:
        return self._with_failover(lambda queue: queue.get_job(job_id))

    def clean(self, state: JobState, grace: float = 0.0) -> int:
        return self._with_failover(lambda queue: queue.clean(state, grace))

    def stats(self) -> Dict[str, Any]:
        result: Dict[str, Any] = self._with_failover(lambda queue: queue.stats())
        result.update({
            'mode': self.mode,
            'failedOver': self.runtime.failed_over,
            'backendRecovered': self.runtime.backend_recovered,
            'lastFailoverReason': self.runtime.last_failover_reason,
        })
        if self.runtime.rate_limiter is not None:
            result['rateLimiter'] = self.runtime.rate_limiter.stats()
        return result

    def _with_failover(self, operation: Callable[[JobQueue], Any]) -> Any:
        queue = self.queue
        try:
            return operation(queue)
        except QueueConnectionError as e:
            self.failover(str(e), failed=queue)
            return operation(self.queue)

    # ------------------------------------------------------------------
    # Failover and recovery
    # ------------------------------------------------------------------

    def _on_connection_error(self, queue: JobQueue, error: Exception) -> None:
        self.failover(str(error), failed=queue)

    def failover(self, reason: str, failed: JobQueue = None) -> bool:
        """
        Replace the durable queue with the in-memory one.

        Only the first caller for a given queue switches; later callers
        holding the same failed instance see it is no longer active.

        Returns:
            True if this call performed the switch
        """
        with self.runtime.lock:
            current = self.runtime.active
            if current is None or isinstance(current, InMemoryJobQueue):
                return False
            if failed is not None and failed is not current:
                return False
            self._install(self._build_fallback())
            self.runtime.failed_over = True
            self.runtime.backend_recovered = False
            self.runtime.last_failover_reason = reason

        self.logger.error(f"Redis queue failed ({reason}); switched to in-memory queue. "
                          f"Jobs still in Redis will not run until reinitialize()")
        current.close()
        self._start_health_checks()
        return True

    def check_backend(self) -> bool:
        """Ping Redis once and record whether it is reachable."""
        try:
            client = self.redis_factory(self.redis_settings)
            try:
                reachable = bool(client.ping())
            finally:
                client.close()
        except redis.exceptions.RedisError as e:
            self.logger.debug(f"Redis health check failed: {e}")
            reachable = False

        with self.runtime.lock:
            if reachable and not self.runtime.backend_recovered:
                self.logger.info("Redis is reachable again; call reinitialize() to switch back")
            self.runtime.backend_recovered = reachable
        return reachable

    def reinitialize(self) -> bool:
        """
        Switch back to Redis if it is reachable.

        Jobs waiting in the in-memory queue are dropped with it.

        Returns:
            True if the Redis queue is active afterwards
        """
        with self.runtime.lock:
            current = self.runtime.active
            if isinstance(current, RedisJobQueue):
                return True
            durable = self._build_durable()
            if durable is None:
                return False
            self._install(durable)
            self.runtime.failed_over = False
            self.runtime.backend_recovered = False

        self._health_stop.set()
        if current is not None:
            pending = current.stats()
            dropped = pending.get(JobState.WAITING.value, 0) + pending.get(JobState.DELAYED.value, 0)
            if dropped:
                self.logger.warning(f"Dropping {dropped} unstarted in-memory job(s) on switch to Redis")
            current.close()
        self.logger.info("Switched back to Redis queue")
        return True

    def _start_health_checks(self) -> None:
        if not self.redis_settings.enabled:
            return
        if self._health_thread is not None and self._health_thread.is_alive():
            return
        self._health_stop = threading.Event()
        self._health_thread = threading.Thread(
            target=self._health_loop,
            args=(self._health_stop,),
            name="queue-health-check",
            daemon=True
        )
        self._health_thread.start()

    def _health_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self.settings.health_check_interval):
            if isinstance(self.runtime.active, RedisJobQueue):
                return
            self.check_backend()


# Global supervisor instance
_supervisor_instance: Optional[QueueSupervisor] = None


def get_supervisor() -> QueueSupervisor:
    """Get or create the process-wide supervisor."""
    global _supervisor_instance
    if _supervisor_instance is None:
        runtime = QueueRuntime(
            rate_limiter=get_rate_limiter(),
            cache=get_cache() if config.cache.enabled else None
        )
        _supervisor_instance = QueueSupervisor(runtime=runtime)
    return _supervisor_instance
