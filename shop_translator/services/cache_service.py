"""
Translation Cache Service
=========================
Process-wide SQLite cache of accepted translations, keyed by source text,
target language and the strategy that produced them.
"""
import hashlib
import sqlite3
from typing import Dict, Optional

from shop_translator.config import config
from shop_translator.utils.logging import get_logger


class TranslationCache:
    """Cache for storing and retrieving accepted translations."""

    def __init__(self, db_path: str = None, enabled: bool = None):
        self.db_path = db_path or config.paths.cache_db_path
        self.enabled = config.cache.enabled if enabled is None else enabled
        self.logger = get_logger().translation_logger
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS translation_cache (
                    hash_key TEXT PRIMARY KEY,
                    target_lang TEXT NOT NULL,
                    strategy TEXT NOT NULL,
                    original_text TEXT,
                    translated_text TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    last_used TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_cache_last_used ON translation_cache(last_used)')

    @staticmethod
    def make_key(text: str, target_lang: str, strategy: str) -> str:
        key = f"{target_lang}\x00{strategy}\x00{text}".encode('utf-8')
        return hashlib.sha256(key).hexdigest()

    def get(self, text: str, target_lang: str, strategy: str) -> Optional[str]:
        """
        Look up a cached translation.

        Returns:
            The translated text, or None on a miss or when disabled
        """
        if not self.enabled:
            return None

        hash_key = self.make_key(text, target_lang, strategy)
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    'SELECT translated_text FROM translation_cache WHERE hash_key = ?',
                    (hash_key,)
                ).fetchone()
                if row:
                    conn.execute(
                        'UPDATE translation_cache SET last_used = CURRENT_TIMESTAMP WHERE hash_key = ?',
                        (hash_key,)
                    )
                    self.logger.debug(f"Cache hit {strategy}/{target_lang} {len(row[0])} chars")
                    return row[0]
        except sqlite3.Error as e:
            self.logger.error(f"Cache lookup error: {e}")
        return None

    def set(self, text: str, target_lang: str, strategy: str, translated_text: str):
        """Store an accepted translation."""
        if not self.enabled or not translated_text:
            return

        hash_key = self.make_key(text, target_lang, strategy)
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute('''
                    INSERT OR REPLACE INTO translation_cache
                    (hash_key, target_lang, strategy, original_text, translated_text, created_at, last_used)
                    VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                ''', (hash_key, target_lang, strategy, text, translated_text))
            self.logger.debug(f"Cache store {strategy}/{target_lang} {len(translated_text)} chars")
        except sqlite3.Error as e:
            self.logger.error(f"Cache store error: {e}")

    def cleanup(self, days: int = None) -> int:
        """Remove entries not used within ``days`` (uses config if not specified)."""
        days = days or config.cache.max_age_days
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    "DELETE FROM translation_cache WHERE last_used < datetime('now', ?)",
                    (f'-{int(days)} days',)
                )
                if cursor.rowcount > 0:
                    self.logger.info(f"Cleaned up {cursor.rowcount} old cache entries")
                return cursor.rowcount
        except sqlite3.Error as e:
            self.logger.error(f"Cache cleanup error: {e}")
            return 0

    def clear(self):
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM translation_cache")
            self.logger.info("Translation cache cleared")
        except sqlite3.Error as e:
            self.logger.error(f"Cache clear error: {e}")

    def get_stats(self) -> Dict[str, int]:
        try:
            with sqlite3.connect(self.db_path) as conn:
                total = conn.execute("SELECT COUNT(*) FROM translation_cache").fetchone()[0]
                recent = conn.execute(
                    "SELECT COUNT(*) FROM translation_cache WHERE last_used > datetime('now', '-1 day')"
                ).fetchone()[0]
            return {'total_entries': total, 'entries_last_24h': recent}
        except sqlite3.Error:
            return {'total_entries': 0, 'entries_last_24h': 0}


# Global cache instance
_cache_instance: Optional[TranslationCache] = None


def get_cache() -> TranslationCache:
    """Get or create the global cache instance."""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = TranslationCache()
    return _cache_instance
