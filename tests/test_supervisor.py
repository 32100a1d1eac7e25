"""
Tests for backend selection, failover and recovery.
"""
from unittest.mock import MagicMock, Mock

import pytest
import redis

from shop_translator.config.settings import QueueConfig, RedisConfig
from shop_translator.job_queue import InMemoryJobQueue, QueueRuntime, QueueSupervisor, RedisJobQueue


def healthy_client():
    client = MagicMock()
    client.ping.return_value = True
    client.pipeline.return_value = MagicMock()
    return client


def broken_client():
    client = healthy_client()
    client.pipeline.return_value.execute.side_effect = redis.exceptions.ConnectionError('connection reset')
    return client


@pytest.fixture
def make_supervisor():
    created = []

    def factory(redis_factory=None, enabled=True, runtime=None):
        supervisor = QueueSupervisor(
            settings=QueueConfig(health_check_interval=60, poll_interval=0.05),
            redis_settings=RedisConfig(enabled=enabled, url=None),
            redis_factory=redis_factory or (lambda settings: healthy_client()),
            runtime=runtime
        )
        created.append(supervisor)
        return supervisor

    yield factory
    for supervisor in created:
        supervisor.shutdown()


class TestInitialize:
    """Backend choice at startup."""

    def test_redis_when_reachable(self, make_supervisor):
        supervisor = make_supervisor()
        assert isinstance(supervisor.initialize(), RedisJobQueue)
        assert supervisor.mode == 'redis'

    def test_memory_when_disabled(self, make_supervisor):
        supervisor = make_supervisor(enabled=False)
        assert isinstance(supervisor.initialize(), InMemoryJobQueue)
        assert supervisor._health_thread is None

    def test_memory_when_unreachable(self, make_supervisor):
        def refuse(settings):
            raise redis.exceptions.ConnectionError('refused')

        supervisor = make_supervisor(redis_factory=refuse)
        assert supervisor.initialize().mode == 'memory'
        assert supervisor._health_thread.is_alive()

    def test_memory_when_ping_fails(self, make_supervisor):
        client = healthy_client()
        client.ping.side_effect = redis.exceptions.TimeoutError('timeout')
        supervisor = make_supervisor(redis_factory=lambda settings: client)
        assert supervisor.mode == 'uninitialized'
        assert supervisor.initialize().mode == 'memory'


class TestFailover:
    """Switching to the in-memory queue at runtime."""

    def test_enqueue_fails_over_and_is_accepted(self, make_supervisor):
        client = broken_client()
        supervisor = make_supervisor(redis_factory=lambda settings: client)
        supervisor.initialize()

        job = supervisor.enqueue('translateResource', {'resourceId': 'r1'})

        assert supervisor.mode == 'memory'
        assert supervisor.get_job(job.id).data == {'resourceId': 'r1'}
        stats = supervisor.stats()
        assert stats['failedOver'] is True
        assert 'connection reset' in stats['lastFailoverReason']
        assert stats['waiting'] == 1
        client.close.assert_called_once()

    def test_failover_happens_once(self, make_supervisor):
        supervisor = make_supervisor()
        durable = supervisor.initialize()

        assert supervisor.failover('first', failed=durable) is True
        fallback = supervisor.queue
        assert supervisor.failover('second', failed=durable) is False
        assert supervisor.failover('third') is False
        assert supervisor.queue is fallback
        assert supervisor.runtime.last_failover_reason == 'first'

    def test_worker_error_triggers_failover(self, make_supervisor):
        supervisor = make_supervisor()
        durable = supervisor.initialize()
        supervisor._on_connection_error(durable, ConnectionError('lost'))
        assert supervisor.mode == 'memory'

    def test_processors_follow_the_active_queue(self, make_supervisor):
        supervisor = make_supervisor()
        handler = Mock()
        supervisor.register_processor('translateResource', 2, handler)
        durable = supervisor.initialize()
        supervisor.failover('down', failed=durable)

        assert supervisor.queue._processors['translateResource'] == (2, handler)

    def test_stats_include_rate_limiter(self, make_supervisor):
        limiter = Mock()
        limiter.stats.return_value = {'requestsLastMinute': 3}
        supervisor = make_supervisor(enabled=False, runtime=QueueRuntime(rate_limiter=limiter))

        stats = supervisor.stats()
        assert stats['mode'] == 'memory'
        assert stats['rateLimiter'] == {'requestsLastMinute': 3}


class TestRecovery:
    """Health checks and explicit switch back."""

    def test_check_backend(self, make_supervisor):
        supervisor = make_supervisor()
        assert supervisor.check_backend() is True
        assert supervisor.runtime.backend_recovered is True

    def test_check_backend_unreachable(self, make_supervisor):
        client = healthy_client()
        client.ping.side_effect = redis.exceptions.ConnectionError('refused')
        supervisor = make_supervisor(redis_factory=lambda settings: client)

        assert supervisor.check_backend() is False
        assert supervisor.runtime.backend_recovered is False
        client.close.assert_called_once()

    def test_reinitialize_switches_back(self, make_supervisor):
        factory = Mock(side_effect=[redis.exceptions.ConnectionError('refused'), healthy_client()])
        supervisor = make_supervisor(redis_factory=factory)
        supervisor.initialize()
        supervisor.enqueue('translateResource', {})

        assert supervisor.reinitialize() is True
        assert supervisor.mode == 'redis'
        assert supervisor.runtime.failed_over is False

    def test_reinitialize_when_still_down(self, make_supervisor):
        def refuse(settings):
            raise redis.exceptions.ConnectionError('refused')

        supervisor = make_supervisor(redis_factory=refuse)
        supervisor.initialize()
        assert supervisor.reinitialize() is False
        assert supervisor.mode == 'memory'

    def test_reinitialize_on_redis_is_noop(self, make_supervisor):
        supervisor = make_supervisor()
        durable = supervisor.initialize()
        assert supervisor.reinitialize() is True
        assert supervisor.queue is durable
