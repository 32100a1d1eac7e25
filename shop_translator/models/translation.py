"""
Translation Data Models
=======================
Core data structures for resources, translation results and jobs.
"""
import uuid
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from shop_translator.config.constants import (
    FieldName,
    FailureKind,
    JobState,
    ResourceStatus,
    StrategyName,
    PLAIN_DESCRIPTION_TYPES
)


def _iso(timestamp: Optional[float]) -> Optional[str]:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class Resource:
    """Snapshot of a translatable commerce entity, read at dequeue time."""
    id: str
    shop_id: str
    resource_type: str = "product"
    title: Optional[str] = None
    handle: Optional[str] = None
    description: Optional[str] = None
    description_html: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    summary: Optional[str] = None
    label: Optional[str] = None
    vendor: Optional[str] = None
    status: ResourceStatus = ResourceStatus.PENDING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Resource':
        """Build from a store row or API payload (camelCase or snake_case keys)."""
        def pick(*keys):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        status = pick('status') or ResourceStatus.PENDING.value
        return cls(
            id=str(pick('id', 'resourceId', 'resource_id')),
            shop_id=str(pick('shopId', 'shop_id') or ''),
            resource_type=(pick('resourceType', 'resource_type') or 'product').lower(),
            title=pick('title'),
            handle=pick('handle'),
            description=pick('description'),
            description_html=pick('descriptionHtml', 'description_html'),
            seo_title=pick('seoTitle', 'seo_title'),
            seo_description=pick('seoDescription', 'seo_description'),
            summary=pick('summary'),
            label=pick('label'),
            vendor=pick('vendor'),
            status=ResourceStatus(status)
        )

    def translatable_fields(self) -> Dict[FieldName, str]:
        """Present, non-blank fields in processing order."""
        if self.resource_type in PLAIN_DESCRIPTION_TYPES:
            description = self.description or self.description_html
        else:
            description = self.description_html or self.description

        candidates = [
            (FieldName.TITLE, self.title),
            (FieldName.DESCRIPTION, description),
            (FieldName.HANDLE, self.handle),
            (FieldName.SUMMARY, self.summary),
            (FieldName.LABEL, self.label),
            (FieldName.SEO_TITLE, self.seo_title),
            (FieldName.SEO_DESCRIPTION, self.seo_description),
        ]
        return {name: value for name, value in candidates if value and value.strip()}

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'shopId': self.shop_id,
            'resourceType': self.resource_type,
            'title': self.title,
            'handle': self.handle,
            'description': self.description,
            'descriptionHtml': self.description_html,
            'seoTitle': self.seo_title,
            'seoDescription': self.seo_description,
            'summary': self.summary,
            'label': self.label,
            'vendor': self.vendor,
            'status': self.status.value,
        }


@dataclass
class ProtectedText:
    """Text with non-translatable spans replaced by placeholders."""
    text: str
    placeholders: Dict[str, str] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.placeholders)


@dataclass
class Segment:
    """A routable slice of protected text: a list block or ordinary content."""
    kind: str
    content: str

    @property
    def is_list(self) -> bool:
        return self.kind == 'list'


@dataclass
class StrategyOutcome:
    """Tagged result of one cascade run."""
    success: bool
    text: str
    strategy: StrategyName
    failure: Optional[FailureKind] = None
    reason: str = ""
    attempts: int = 0
    warnings: List[str] = field(default_factory=list)


@dataclass
class FieldResult:
    """Outcome for one field. ``text`` holds the original when translation failed."""
    field_name: FieldName
    original: str
    text: str
    success: bool
    strategy: StrategyName
    notes: List[str] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return not self.success

    def to_dict(self) -> dict:
        return {
            'field': self.field_name.value,
            'text': self.text,
            'success': self.success,
            'strategy': self.strategy.value,
            'notes': list(self.notes),
            'needsReview': self.needs_review,
        }


@dataclass
class TranslationResult:
    """Per-field translation of one resource into one language."""
    resource_id: str
    language: str
    fields: Dict[FieldName, FieldResult] = field(default_factory=dict)

    @property
    def translations(self) -> Dict[str, Optional[str]]:
        """fieldName -> text, or None for fields the resource does not have."""
        return {
            name.value: (self.fields[name].text if name in self.fields else None)
            for name in FieldName
        }

    @property
    def success(self) -> bool:
        """True when at least one field translated."""
        return any(result.success for result in self.fields.values())

    @property
    def failed_fields(self) -> List[str]:
        return [name.value for name, result in self.fields.items() if not result.success]

    @property
    def strategies(self) -> Dict[str, str]:
        return {name.value: result.strategy.value for name, result in self.fields.items()}

    def to_dict(self) -> dict:
        return {
            'resourceId': self.resource_id,
            'language': self.language,
            'success': self.success,
            'translations': self.translations,
            'strategies': self.strategies,
            'failedFields': self.failed_fields,
            'fields': {name.value: result.to_dict() for name, result in self.fields.items()},
        }


@dataclass
class TranslationJob:
    """A queued unit of work. The payload is plain JSON so any backend can hold it."""
    name: str
    data: Dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: JobState = JobState.WAITING
    progress: int = 0
    attempts: int = 0
    max_attempts: int = 3
    created_at: float = field(default_factory=time.time)
    run_at: float = 0.0
    processed_at: Optional[float] = None
    finished_at: Optional[float] = None
    failed_reason: Optional[str] = None
    result: Optional[Any] = None

    def to_record(self) -> Dict[str, Any]:
        """Serializable form used by queue backends."""
        return {
            'id': self.id,
            'name': self.name,
            'data': self.data,
            'state': self.state.value,
            'progress': self.progress,
            'attempts': self.attempts,
            'max_attempts': self.max_attempts,
            'created_at': self.created_at,
            'run_at': self.run_at,
            'processed_at': self.processed_at,
            'finished_at': self.finished_at,
            'failed_reason': self.failed_reason,
            'result': self.result,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'TranslationJob':
        return cls(
            id=record['id'],
            name=record['name'],
            data=record.get('data') or {},
            state=JobState(record.get('state', JobState.WAITING.value)),
            progress=int(record.get('progress', 0)),
            attempts=int(record.get('attempts', 0)),
            max_attempts=int(record.get('max_attempts', 3)),
            created_at=float(record.get('created_at') or time.time()),
            run_at=float(record.get('run_at') or 0.0),
            processed_at=record.get('processed_at'),
            finished_at=record.get('finished_at'),
            failed_reason=record.get('failed_reason'),
            result=record.get('result'),
        )

    def to_dict(self) -> dict:
        """Status view returned to API callers."""
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state.value,
            'progress': self.progress,
            'attempts': self.attempts,
            'maxAttempts': self.max_attempts,
            'createdAt': _iso(self.created_at),
            'processedAt': _iso(self.processed_at),
            'finishedAt': _iso(self.finished_at),
            'failedReason': self.failed_reason,
            'data': self.data,
            'result': self.result,
        }
