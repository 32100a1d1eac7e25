"""
Database Connection Manager
===========================
SQLite storage for resources and their translations.
"""
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from shop_translator.config import config
from shop_translator.utils.logging import get_logger


class Database:
    """
    Thread-safe SQLite database manager.

    Each thread gets its own connection; queue workers and request threads
    never share one.
    """

    _instance: Optional['Database'] = None
    _lock = threading.Lock()

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path or config.paths.db_path)
        self.logger = get_logger().db_logger
        self._local = threading.local()
        self._initialized = False

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_instance(cls, db_path: Path = None) -> 'Database':
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls(db_path)
            return cls._instance

    @property
    def connection(self) -> sqlite3.Connection:
        """Get thread-local connection."""
        if getattr(self._local, 'connection', None) is None:
            self._local.connection = self._create_connection()
        return self._local.connection

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=config.logging.db_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return
            self._create_tables()
            self._initialized = True
            self.logger.info(f"Database initialized: {self.db_path}")

    def _create_tables(self) -> None:
        with self.connection:
            self.connection.execute("""
                CREATE TABLE IF NOT EXISTS resources (
                    id TEXT PRIMARY KEY,
                    shop_id TEXT NOT NULL,
                    resource_type TEXT NOT NULL DEFAULT 'product',
                    title TEXT,
                    handle TEXT,
                    description TEXT,
                    description_html TEXT,
                    seo_title TEXT,
                    seo_description TEXT,
                    summary TEXT,
                    label TEXT,
                    vendor TEXT,
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT valid_status CHECK (
                        status IN ('pending', 'processing', 'completed')
                    )
                )
            """)

            self.connection.execute("""
                CREATE TABLE IF NOT EXISTS translations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    resource_id TEXT NOT NULL,
                    shop_id TEXT NOT NULL,
                    language TEXT NOT NULL,
                    translations TEXT NOT NULL,
                    strategies TEXT,
                    failed_fields TEXT,
                    success INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE,
                    UNIQUE(resource_id, language)
                )
            """)
            self.connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_resources_shop ON resources(shop_id, status)"
            )

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database transactions."""
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            self.logger.error(f"Transaction rolled back: {e}")
            raise

    def execute(self, query: str, params: tuple = None) -> sqlite3.Cursor:
        try:
            return self.connection.execute(query, params or ())
        except sqlite3.Error as e:
            self.logger.error(f"Database error: {e}")
            raise

    def fetchone(self, query: str, params: tuple = None) -> Optional[sqlite3.Row]:
        return self.execute(query, params).fetchone()

    def fetchall(self, query: str, params: tuple = None) -> list:
        return self.execute(query, params).fetchall()

    def close(self) -> None:
        """Close thread-local connection."""
        if getattr(self._local, 'connection', None) is not None:
            self._local.connection.close()
            self._local.connection = None


# Global accessor
_database: Optional[Database] = None


def get_database() -> Database:
    """Get database singleton."""
    global _database
    if _database is None:
        _database = Database.get_instance()
        _database.initialize()
    return _database


def reset_database() -> None:
    """Reset database singleton (for testing)."""
    global _database
    if _database:
        _database.close()
    _database = None
    Database._instance = None
