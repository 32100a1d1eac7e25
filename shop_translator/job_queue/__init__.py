"""
Shop Translator - Job Queue
Redis-backed job queue with in-memory failover and the translation job processors.
"""
from shop_translator.job_queue.base import (
    QueueError,
    QueueConnectionError,
    JobPayloadError,
    TerminalJobError,
    ResourceNotFoundError,
    CrossEnvironmentError,
    JobContext,
    JobQueue,
    BaseJobQueue
)
from shop_translator.job_queue.memory_queue import InMemoryJobQueue
from shop_translator.job_queue.redis_queue import RedisJobQueue, create_redis_client
from shop_translator.job_queue.supervisor import QueueRuntime, QueueSupervisor, get_supervisor
from shop_translator.job_queue.jobs import (
    TRANSLATE_JOB,
    BATCH_JOB,
    TranslationJobService,
    get_job_service
)

__all__ = [
    'QueueError',
    'QueueConnectionError',
    'JobPayloadError',
    'TerminalJobError',
    'ResourceNotFoundError',
    'CrossEnvironmentError',
    'JobContext',
    'JobQueue',
    'BaseJobQueue',
    'InMemoryJobQueue',
    'RedisJobQueue',
    'create_redis_client',
    'QueueRuntime',
    'QueueSupervisor',
    'get_supervisor',
    'TRANSLATE_JOB',
    'BATCH_JOB',
    'TranslationJobService',
    'get_job_service'
]
