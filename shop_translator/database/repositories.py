"""
Database Repositories
=====================
Resource and translation stores used by the job processors.

``ResourceStore`` and ``TranslationStore`` are the interfaces the queue
depends on; the SQLite repositories below are the default implementations.
"""
import json
from typing import Any, Dict, List, Optional, Protocol

from shop_translator.config.constants import ResourceStatus
from shop_translator.database.connection import Database, get_database
from shop_translator.models.translation import Resource, TranslationResult
from shop_translator.utils.logging import get_logger


class ResourceStore(Protocol):
    def find_by_id(self, resource_id: str) -> Optional[Resource]:
        ...

    def update_status(self, resource_id: str, status: ResourceStatus) -> None:
        ...


class TranslationStore(Protocol):
    def save(self, shop_id: str, result: TranslationResult) -> None:
        ...


RESOURCE_COLUMNS = (
    'id', 'shop_id', 'resource_type', 'title', 'handle', 'description', 'description_html',
    'seo_title', 'seo_description', 'summary', 'label', 'vendor', 'status'
)


class ResourceRepository:
    """
    Repository for translatable resources.

    Provides lookup, upsert and status transitions.
    """

    def __init__(self, database: Database = None):
        self.db = database or get_database()
        self.logger = get_logger().db_logger

    def find_by_id(self, resource_id: str) -> Optional[Resource]:
        row = self.db.fetchone("SELECT * FROM resources WHERE id = ?", (resource_id,))
        return Resource.from_dict(dict(row)) if row else None

    def upsert(self, resource: Resource) -> None:
        """Insert or replace a resource snapshot."""
        values = resource.to_dict()
        row = (
            resource.id, resource.shop_id, resource.resource_type, values['title'], values['handle'],
            values['description'], values['descriptionHtml'], values['seoTitle'],
            values['seoDescription'], values['summary'], values['label'], values['vendor'], resource.status.value
        )
        with self.db.transaction() as conn:
            conn.execute(f"""
                INSERT INTO resources ({', '.join(RESOURCE_COLUMNS)})
                VALUES ({', '.join('?' for _ in RESOURCE_COLUMNS)})
                ON CONFLICT(id) DO UPDATE SET
                    shop_id = excluded.shop_id,
                    resource_type = excluded.resource_type,
                    title = excluded.title,
                    handle = excluded.handle,
                    description = excluded.description,
                    description_html = excluded.description_html,
                    seo_title = excluded.seo_title,
                    seo_description = excluded.seo_description,
                    summary = excluded.summary,
                    label = excluded.label,
                    vendor = excluded.vendor,
                    status = excluded.status,
                    updated_at = CURRENT_TIMESTAMP
            """, row)

    def update_status(self, resource_id: str, status: ResourceStatus) -> None:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE resources SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (ResourceStatus(status).value, resource_id)
            )
        if cursor.rowcount:
            self.logger.debug(f"Resource {resource_id} -> {ResourceStatus(status).value}")

    def list_by_shop(self, shop_id: str, status: ResourceStatus = None) -> List[Resource]:
        if status:
            rows = self.db.fetchall(
                "SELECT * FROM resources WHERE shop_id = ? AND status = ? ORDER BY id",
                (shop_id, ResourceStatus(status).value)
            )
        else:
            rows = self.db.fetchall("SELECT * FROM resources WHERE shop_id = ? ORDER BY id", (shop_id,))
        return [Resource.from_dict(dict(row)) for row in rows]


class TranslationRepository:
    """Repository for per-language translation results."""

    def __init__(self, database: Database = None):
        self.db = database or get_database()
        self.logger = get_logger().db_logger

    def save(self, shop_id: str, result: TranslationResult) -> None:
        """Insert or replace the translation of one resource into one language."""
        with self.db.transaction() as conn:
            conn.execute("""
                INSERT INTO translations (
                    resource_id, shop_id, language, translations, strategies, failed_fields, success
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(resource_id, language) DO UPDATE SET
                    translations = excluded.translations,
                    strategies = excluded.strategies,
                    failed_fields = excluded.failed_fields,
                    success = excluded.success,
                    updated_at = CURRENT_TIMESTAMP
            """, (
                result.resource_id, shop_id, result.language,
                json.dumps(result.translations, ensure_ascii=False),
                json.dumps(result.strategies),
                json.dumps(result.failed_fields),
                int(result.success)
            ))
        self.logger.info(f"Saved translation {result.resource_id}/{result.language}")

    def get(self, resource_id: str, language: str) -> Optional[Dict[str, Any]]:
        row = self.db.fetchone(
            "SELECT * FROM translations WHERE resource_id = ? AND language = ?",
            (resource_id, language)
        )
        if not row:
            return None
        record = dict(row)
        for key in ('translations', 'strategies', 'failed_fields'):
            record[key] = json.loads(record[key]) if record.get(key) else None
        record['success'] = bool(record['success'])
        return record


# Global accessors
_resource_repo: Optional[ResourceRepository] = None
_translation_repo: Optional[TranslationRepository] = None


def get_resource_repository() -> ResourceRepository:
    """Get resource repository singleton."""
    global _resource_repo
    if _resource_repo is None:
        _resource_repo = ResourceRepository()
    return _resource_repo


def get_translation_repository() -> TranslationRepository:
    """Get translation repository singleton."""
    global _translation_repo
    if _translation_repo is None:
        _translation_repo = TranslationRepository()
    return _translation_repo
