"""
Redis Job Queue
===============
Durable, multi-process queue on Redis.

Key layout under ``<prefix>:<queue>``:

- ``job:<id>``        hash with the JSON job body and its state
- ``ready:<name>``    list of job ids ready to run, per job type
- ``delayed:<name>``  sorted set of delayed job ids scored by run time
- ``state:<state>``   set of job ids in each state
"""
import json
import time
from contextlib import contextmanager
from typing import Dict, List, Optional

import redis

from shop_translator.config import config
from shop_translator.config.constants import JobState
from shop_translator.config.settings import RedisConfig
from shop_translator.job_queue.base import BaseJobQueue, QueueConnectionError
from shop_translator.models.translation import TranslationJob

PROMOTE_BATCH = 20


def create_redis_client(settings: RedisConfig = None) -> redis.Redis:
    """Build a client from config; no connection is made until first use."""
    settings = settings or config.redis
    if settings.url:
        return redis.Redis.from_url(
            settings.url,
            socket_timeout=settings.socket_timeout,
            socket_connect_timeout=settings.socket_timeout,
            decode_responses=True
        )
    return redis.Redis(
        host=settings.host,
        port=settings.port,
        db=settings.db,
        password=settings.password,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_timeout,
        decode_responses=True
    )


class RedisJobQueue(BaseJobQueue):
    """Job queue persisted in Redis."""

    mode = 'redis'

    def __init__(self, client: redis.Redis, *args, key_prefix: str = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.prefix = f"{key_prefix or config.redis.key_prefix}:{self.name}"

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _job_key(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"

    def _ready_key(self, name: str) -> str:
        return f"{self.prefix}:ready:{name}"

    def _delayed_key(self, name: str) -> str:
        return f"{self.prefix}:delayed:{name}"

    def _state_key(self, state: JobState) -> str:
        return f"{self.prefix}:state:{state.value}"

    @contextmanager
    def _redis_errors(self):
        """Re-raise connectivity problems as QueueConnectionError."""
        try:
            yield
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise QueueConnectionError(f"Redis unavailable: {e}") from e

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        with self._redis_errors():
            return bool(self.client.ping())

    def close(self) -> None:
        super().close()
        try:
            self.client.close()
        except redis.exceptions.RedisError as e:
            self.logger.debug(f"Error closing Redis client: {e}")

    def _write(self, pipe, job: TranslationJob) -> None:
        key = self._job_key(job.id)
        pipe.hset(key, mapping={'body': json.dumps(job.to_record()), 'state': job.state.value})
        pipe.expire(key, self.settings.job_ttl)
        for state in JobState:
            if state != job.state:
                pipe.srem(self._state_key(state), job.id)
        pipe.sadd(self._state_key(job.state), job.id)

    def _store(self, job: TranslationJob) -> None:
        if job.state != JobState.DELAYED:
            job.state = JobState.WAITING
        with self._redis_errors():
            pipe = self.client.pipeline()
            self._write(pipe, job)
            if job.state == JobState.DELAYED:
                pipe.zadd(self._delayed_key(job.name), {job.id: job.run_at})
            else:
                pipe.rpush(self._ready_key(job.name), job.id)
            pipe.execute()

    def _save(self, job: TranslationJob) -> None:
        with self._redis_errors():
            pipe = self.client.pipeline()
            self._write(pipe, job)
            pipe.execute()

    def _promote_due(self, name: str) -> None:
        delayed_key = self._delayed_key(name)
        due = self.client.zrangebyscore(delayed_key, '-inf', time.time(), start=0, num=PROMOTE_BATCH)
        for job_id in due:
            # Only the worker whose ZREM succeeds moves the job
            if not self.client.zrem(delayed_key, job_id):
                continue
            job = self._load(job_id)
            if job is None:
                continue
            job.state = JobState.WAITING
            pipe = self.client.pipeline()
            self._write(pipe, job)
            pipe.rpush(self._ready_key(name), job_id)
            pipe.execute()

    def _pop(self, name: str, timeout: float) -> Optional[TranslationJob]:
        with self._redis_errors():
            self._promote_due(name)
            job_id = self.client.lpop(self._ready_key(name))
            if job_id is None:
                self._stop.wait(timeout)
                return None
            job = self._load(job_id)
        if job is None or job.state != JobState.WAITING:
            return None
        return job

    def _load(self, job_id: str) -> Optional[TranslationJob]:
        with self._redis_errors():
            body = self.client.hget(self._job_key(job_id), 'body')
        if body is None:
            return None
        return TranslationJob.from_record(json.loads(body))

    def _list(self, state: JobState) -> List[TranslationJob]:
        with self._redis_errors():
            job_ids = self.client.smembers(self._state_key(state))
        jobs = []
        for job_id in job_ids:
            job = self._load(job_id)
            if job is None:
                # Expired hash; drop the dangling id
                with self._redis_errors():
                    self.client.srem(self._state_key(state), job_id)
                continue
            jobs.append(job)
        return jobs

    def _delete(self, job: TranslationJob) -> None:
        with self._redis_errors():
            pipe = self.client.pipeline()
            pipe.delete(self._job_key(job.id))
            for state in JobState:
                pipe.srem(self._state_key(state), job.id)
            pipe.execute()

    def _prune(self, state: JobState) -> None:
        """Drop ids whose job hash has expired from a state set."""
        key = self._state_key(state)
        job_ids = sorted(self.client.smembers(key))
        if not job_ids:
            return
        pipe = self.client.pipeline()
        for job_id in job_ids:
            pipe.exists(self._job_key(job_id))
        stale = [job_id for job_id, found in zip(job_ids, pipe.execute()) if not found]
        if stale:
            self.client.srem(key, *stale)

    def _counts(self) -> Dict[JobState, int]:
        with self._redis_errors():
            for state in JobState:
                self._prune(state)
            pipe = self.client.pipeline()
            for state in JobState:
                pipe.scard(self._state_key(state))
            values = pipe.execute()
        return {state: int(count) for state, count in zip(JobState, values)}
