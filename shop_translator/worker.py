"""
Queue Worker
============
Runs the translation job processors without the HTTP server.

Usage:
    python -m shop_translator.worker
"""
import signal
import threading

from shop_translator.database.connection import get_database
from shop_translator.job_queue.jobs import get_job_service
from shop_translator.utils.logging import get_logger


def run_worker(stop_event: threading.Event = None) -> None:
    """Start the workers and block until SIGINT/SIGTERM or ``stop_event``."""
    logger = get_logger().queue_logger
    stop_event = stop_event or threading.Event()

    get_database()
    service = get_job_service()
    service.supervisor.start()
    logger.info(f"Worker running on {service.supervisor.mode} queue")

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_event.set()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    try:
        while not stop_event.wait(1.0):
            pass
    finally:
        service.supervisor.shutdown()


if __name__ == '__main__':
    run_worker()
