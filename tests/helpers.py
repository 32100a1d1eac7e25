"""
Canned API responses for tests.
"""
from shop_translator.config.constants import FailureKind
from shop_translator.services.api_client import ChatResponse


def ok(text: str) -> ChatResponse:
    return ChatResponse(success=True, text=text, status_code=200)


def fail(kind: FailureKind, error: str = 'failed', status_code: int = None) -> ChatResponse:
    return ChatResponse.failed(kind, error, status_code)


def rate_limited() -> ChatResponse:
    return fail(FailureKind.TRANSIENT, 'API error 429: Too Many Requests', 429)


class FakeResources:
    """In-memory resource store recording status transitions."""

    def __init__(self, *resources):
        self.items = {resource.id: resource for resource in resources}
        self.statuses = []

    def find_by_id(self, resource_id):
        return self.items.get(resource_id)

    def upsert(self, resource):
        self.items[resource.id] = resource

    def update_status(self, resource_id, status):
        self.statuses.append(status)


class FakeTranslations:
    def __init__(self):
        self.saved = []

    def save(self, shop_id, result):
        self.saved.append((shop_id, result))
