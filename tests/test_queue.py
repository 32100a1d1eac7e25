"""
Tests for the in-memory job queue and the shared worker loop.
"""
import time

import pytest

from shop_translator.config.constants import JobState
from shop_translator.config.settings import QueueConfig
from shop_translator.job_queue import (
    InMemoryJobQueue,
    JobPayloadError,
    QueueConnectionError,
    ResourceNotFoundError
)


def wait_for(predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def run_next(queue, name='translateResource'):
    job = queue._pop(name, 0.2)
    assert job is not None
    queue._execute(job)
    return queue.get_job(job.id)


@pytest.fixture
def queue():
    settings = QueueConfig(max_attempts=3, backoff_delay=0.01, max_backoff_delay=0.05, poll_interval=0.05)
    queue = InMemoryJobQueue(settings=settings)
    yield queue
    queue.close()


class TestEnqueue:
    """Admission of jobs."""

    def test_enqueue_waiting(self, queue):
        job = queue.enqueue('translateResource', {'resourceId': 'r1'})
        stored = queue.get_job(job.id)

        assert stored.state == JobState.WAITING
        assert stored.data == {'resourceId': 'r1'}
        assert stored.max_attempts == 3
        assert queue.stats()['waiting'] == 1

    def test_enqueue_delayed(self, queue):
        job = queue.enqueue('translateResource', {}, delay=60)
        assert queue.get_job(job.id).state == JobState.DELAYED
        assert queue._pop('translateResource', 0) is None

    def test_delayed_job_becomes_due(self, queue):
        job = queue.enqueue('translateResource', {}, delay=0.05)
        time.sleep(0.1)
        claimed = queue._pop('translateResource', 0.1)
        assert claimed.id == job.id

    def test_payload_must_be_json(self, queue):
        with pytest.raises(JobPayloadError):
            queue.enqueue('translateResource', {'bad': object()})

    def test_get_job_returns_snapshot(self, queue):
        job = queue.enqueue('translateResource', {'resourceId': 'r1'})
        snapshot = queue.get_job(job.id)
        snapshot.data['resourceId'] = 'changed'
        assert queue.get_job(job.id).data['resourceId'] == 'r1'

    def test_unknown_job(self, queue):
        assert queue.get_job('missing') is None


class TestExecution:
    """Processing, retries and terminal failures, driven without threads."""

    def test_success(self, queue):
        def handler(ctx):
            ctx.update_progress(50)
            return {'resourceId': ctx.data['resourceId']}

        queue.register_processor('translateResource', 1, handler)
        queue.enqueue('translateResource', {'resourceId': 'r1'})
        job = run_next(queue)

        assert job.state == JobState.COMPLETED
        assert job.progress == 100
        assert job.result == {'resourceId': 'r1'}
        assert job.attempts == 1
        assert job.finished_at is not None

    def test_retry_then_fail(self, queue):
        def handler(ctx):
            raise RuntimeError('API down')

        queue.register_processor('translateResource', 1, handler)
        queue.enqueue('translateResource', {})

        job = run_next(queue)
        assert job.state == JobState.DELAYED
        assert job.failed_reason == 'API down'

        job = run_next(queue)
        job = run_next(queue)
        assert job.state == JobState.FAILED
        assert job.attempts == 3

    def test_terminal_error_skips_retries(self, queue):
        def handler(ctx):
            raise ResourceNotFoundError('Resource r1 not found')

        queue.register_processor('translateResource', 1, handler)
        queue.enqueue('translateResource', {})
        job = run_next(queue)

        assert job.state == JobState.FAILED
        assert job.attempts == 1
        assert 'ResourceNotFoundError' in job.failed_reason

    def test_progress_clamped(self, queue):
        seen = []

        def handler(ctx):
            ctx.update_progress(250)
            seen.append(queue.get_job(ctx.job.id).progress)

        queue.register_processor('translateResource', 1, handler)
        queue.enqueue('translateResource', {})
        run_next(queue)
        assert seen == [100]


class TestWorkers:
    """Threaded workers."""

    def test_workers_process_jobs(self, queue):
        queue.register_processor('translateResource', 2, lambda ctx: ctx.data['n'] * 2)
        queue.start()
        jobs = [queue.enqueue('translateResource', {'n': n}) for n in range(5)]

        assert wait_for(lambda: queue.stats()['completed'] == 5)
        assert [queue.get_job(job.id).result for job in jobs] == [0, 2, 4, 6, 8]

    def test_processor_registered_after_start(self, queue):
        queue.start()
        job = queue.enqueue('batchTranslate', {})
        queue.register_processor('batchTranslate', 1, lambda ctx: 'done')
        assert wait_for(lambda: queue.get_job(job.id).state == JobState.COMPLETED)

    def test_connection_error_reported(self):
        reported = []

        class BrokenQueue(InMemoryJobQueue):
            def _pop(self, name, timeout):
                raise QueueConnectionError('gone')

        broken = BrokenQueue(
            settings=QueueConfig(poll_interval=0.05),
            on_connection_error=lambda queue, error: reported.append(error)
        )
        broken.register_processor('translateResource', 1, lambda ctx: None)
        broken.start()
        try:
            assert wait_for(lambda: len(reported) > 0)
        finally:
            broken.close()


class TestClean:
    """Removal of finished jobs."""

    def test_clean_completed(self, queue):
        queue.register_processor('translateResource', 1, lambda ctx: None)
        queue.enqueue('translateResource', {})
        queue.enqueue('translateResource', {})
        run_next(queue)

        assert queue.clean(JobState.COMPLETED, grace=60) == 0
        assert queue.clean(JobState.COMPLETED) == 1
        stats = queue.stats()
        assert stats['completed'] == 0
        assert stats['waiting'] == 1

    def test_clean_unfinished_state_rejected(self, queue):
        with pytest.raises(ValueError):
            queue.clean(JobState.WAITING)
