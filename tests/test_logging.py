"""
Tests for the subsystem loggers and the /api/logs buffer.
"""
import logging

from shop_translator.utils.logging import BufferHandler, LogBuffer, get_logger, job_logger, log_buffer


class TestLogBuffer:
    """Records reach the buffer tagged with their subsystem."""

    def test_handler_tags_source(self):
        buffer = LogBuffer(max_size=5)
        logger = logging.getLogger('shop_translator.buffer_test')
        handler = BufferHandler(buffer)
        logger.addHandler(handler)
        try:
            logger.warning('Redis unreachable')
        finally:
            logger.removeHandler(handler)

        entry = buffer.get_all()[-1]
        assert entry['source'] == 'buffer_test'
        assert entry['level'] == 'WARNING'
        assert entry['message'] == 'Redis unreachable'

    def test_subsystem_loggers_feed_global_buffer(self):
        last_id = log_buffer.last_id
        get_logger().queue_logger.warning('switched to in-memory queue')

        entries = log_buffer.get_since(last_id, 'queue')
        assert [e['message'] for e in entries] == ['switched to in-memory queue']
        assert log_buffer.get_since(last_id, 'api') == []

    def test_ring_buffer_is_bounded(self):
        buffer = LogBuffer(max_size=2)
        for message in ('a', 'b', 'c'):
            buffer.add('INFO', 'queue', message)
        assert [e['message'] for e in buffer.get_all()] == ['b', 'c']
        assert buffer.get_since(2) == [buffer.get_all()[-1]]

    def test_job_logger_prefix(self):
        last_id = log_buffer.last_id
        job_logger(get_logger().queue_logger, 'j1', 'translateResource').warning('retrying')
        assert log_buffer.get_since(last_id, 'queue')[-1]['message'] == '[job j1 translateResource] retrying'
