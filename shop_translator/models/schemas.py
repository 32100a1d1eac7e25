"""
Request/Response Schemas
========================
Validation schemas for job payloads and API requests.
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


def _text(payload: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return str(value).strip()
    return None


@dataclass
class TranslationJobRequest:
    """Payload of a single-resource translation job."""
    resource_id: Optional[str]
    shop_id: Optional[str]
    language: Optional[str]
    shop_domain: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'TranslationJobRequest':
        payload = payload or {}
        return cls(
            resource_id=_text(payload, 'resourceId', 'resource_id'),
            shop_id=_text(payload, 'shopId', 'shop_id'),
            language=_text(payload, 'language'),
            shop_domain=_text(payload, 'shopDomain', 'shop_domain')
        )

    def validate(self) -> List[str]:
        """Validate the request and return list of errors."""
        errors = []
        if not self.resource_id:
            errors.append("resourceId is required")
        if not self.shop_id:
            errors.append("shopId is required")
        if not self.language:
            errors.append("language is required")
        return errors

    def to_payload(self) -> Dict[str, Any]:
        return {
            'resourceId': self.resource_id,
            'shopId': self.shop_id,
            'shopDomain': self.shop_domain,
            'language': self.language,
        }


@dataclass
class BatchTranslationJobRequest:
    """Payload of a batch job that fans out into single-resource jobs."""
    resource_ids: List[str] = field(default_factory=list)
    shop_id: Optional[str] = None
    language: Optional[str] = None
    shop_domain: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'BatchTranslationJobRequest':
        payload = payload or {}
        raw_ids = payload.get('resourceIds', payload.get('resource_ids'))
        if isinstance(raw_ids, (list, tuple)):
            resource_ids = [str(rid).strip() for rid in raw_ids if rid is not None]
        else:
            resource_ids = None
        return cls(
            resource_ids=resource_ids,
            shop_id=_text(payload, 'shopId', 'shop_id'),
            language=_text(payload, 'language'),
            shop_domain=_text(payload, 'shopDomain', 'shop_domain')
        )

    def validate(self) -> List[str]:
        """Validate the request and return list of errors."""
        errors = []
        if self.resource_ids is None:
            errors.append("resourceIds must be a list")
        elif not self.resource_ids:
            errors.append("resourceIds must not be empty")
        elif any(not rid for rid in self.resource_ids):
            errors.append("resourceIds must not contain blank ids")
        if not self.shop_id:
            errors.append("shopId is required")
        if not self.language:
            errors.append("language is required")
        return errors

    def to_payload(self) -> Dict[str, Any]:
        return {
            'resourceIds': list(self.resource_ids or []),
            'shopId': self.shop_id,
            'shopDomain': self.shop_domain,
            'language': self.language,
        }

    def item(self, resource_id: str) -> TranslationJobRequest:
        """Single-resource request for one member of the batch."""
        return TranslationJobRequest(
            resource_id=resource_id,
            shop_id=self.shop_id,
            language=self.language,
            shop_domain=self.shop_domain
        )


@dataclass
class JobAdmission:
    """Acknowledgement returned when a job enters the queue."""
    job_id: str
    resource_id: Optional[str] = None
    status: str = "queued"
    delay: float = 0.0
    resource_count: Optional[int] = None

    def to_dict(self) -> dict:
        result = {'jobId': self.job_id, 'status': self.status}
        if self.resource_id is not None:
            result['resourceId'] = self.resource_id
        if self.delay:
            result['delay'] = self.delay
        if self.resource_count is not None:
            result['resourceCount'] = self.resource_count
        return result
