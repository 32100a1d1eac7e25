"""
Logging Utilities
=================
One named logger per subsystem. Every record goes to a rotating file, the
console and the in-memory buffer behind ``/api/logs``.
"""
import os
import logging
import threading
from collections import deque
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import List, Dict, Optional
from shop_translator.config import config

LOGGER_PREFIX = 'shop_translator.'


class LogBuffer:
    """Thread-safe ring buffer of recent records, filterable by subsystem."""

    def __init__(self, max_size: int = None):
        self.buffer = deque(maxlen=max_size or config.logging.log_buffer_size)
        self.lock = threading.Lock()
        self.last_id = 0

    def add(self, level: str, source: str, message: str) -> Dict:
        with self.lock:
            self.last_id += 1
            entry = {
                'id': self.last_id,
                'timestamp': datetime.now().strftime('%H:%M:%S.%f')[:-3],
                'level': level,
                'source': source,
                'message': message
            }
            self.buffer.append(entry)
            return entry

    def get_all(self) -> List[Dict]:
        with self.lock:
            return list(self.buffer)

    def get_since(self, since_id: int, source: str = None) -> List[Dict]:
        """Entries newer than since_id, optionally for one source."""
        with self.lock:
            return [
                e for e in self.buffer
                if e['id'] > since_id and (source is None or e['source'] == source)
            ]

    def clear(self):
        with self.lock:
            self.buffer.clear()
            self.last_id = 0


# Global log buffer instance
log_buffer = LogBuffer()


class BufferHandler(logging.Handler):
    """Feeds records into a LogBuffer, tagged with the subsystem name."""

    def __init__(self, buffer: LogBuffer):
        super().__init__()
        self.log_buffer = buffer

    def emit(self, record: logging.LogRecord):
        try:
            source = record.name[len(LOGGER_PREFIX):] if record.name.startswith(LOGGER_PREFIX) else record.name
            self.log_buffer.add(record.levelname, source, record.getMessage())
        except Exception:
            self.handleError(record)


class AppLogger:
    """Loggers for translation, queue, api and database work."""

    def __init__(self, log_dir: str = None, buffer: LogBuffer = None):
        self.log_dir = log_dir or config.paths.log_folder
        self.buffer = buffer or log_buffer
        os.makedirs(self.log_dir, exist_ok=True)

        self.translation_logger = self._setup_logger('translation', 'translations.log')
        self.queue_logger = self._setup_logger('queue', 'queue.log')
        self.api_logger = self._setup_logger('api', 'api.log')
        self.db_logger = self._setup_logger('database', 'database.log')

    def _setup_logger(self, subsystem: str, filename: str) -> logging.Logger:
        logger = logging.getLogger(LOGGER_PREFIX + subsystem)
        level = logging.DEBUG if config.logging.verbose_debug else logging.INFO
        logger.setLevel(level)

        # Prevent duplicate handlers
        if logger.handlers:
            return logger

        file_handler = RotatingFileHandler(
            os.path.join(self.log_dir, filename),
            maxBytes=config.logging.log_file_max_bytes,
            backupCount=config.logging.log_file_backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        ))
        logger.addHandler(console_handler)

        logger.addHandler(BufferHandler(self.buffer))
        return logger


class JobLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the job it belongs to."""

    def process(self, msg, kwargs):
        return f"[job {self.extra['job_id']} {self.extra['job_name']}] {msg}", kwargs


def job_logger(logger: logging.Logger, job_id: str, job_name: str) -> JobLoggerAdapter:
    """Wrap a logger so its records carry the job id and type."""
    return JobLoggerAdapter(logger, {'job_id': job_id, 'job_name': job_name})


# Global logger instance
_logger_instance: Optional[AppLogger] = None


def get_logger() -> AppLogger:
    """Get or create the global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = AppLogger()
    return _logger_instance
