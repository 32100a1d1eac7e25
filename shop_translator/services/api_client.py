"""
Translation API Client
======================
Client for an OpenAI-compatible chat-completion endpoint.

Failures are returned as tagged ``ChatResponse`` objects rather than raised,
so the strategy cascade can branch on ``failure`` without parsing messages.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from shop_translator.config import config
from shop_translator.config.constants import FailureKind, TEXT_TOO_LONG_SENTINEL
from shop_translator.services.rate_limiter import RequestRateLimiter, get_rate_limiter
from shop_translator.utils.logging import get_logger
from shop_translator.utils.text_processing import calculate_safe_max_tokens, clean_translation_response

CONFIG_STATUS_CODES = (401, 403)


@dataclass
class ChatResponse:
    """Response from the chat-completion API."""
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    failure: Optional[FailureKind] = None
    status_code: Optional[int] = None
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.failure == FailureKind.TRANSIENT

    @classmethod
    def failed(cls, failure: FailureKind, error: str, status_code: int = None) -> 'ChatResponse':
        return cls(success=False, error=error, failure=failure, status_code=status_code)


class TranslationApiClient:
    """Client for chat-completion translation calls."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        model: str = None,
        rate_limiter: RequestRateLimiter = None,
        session: requests.Session = None
    ):
        self.base_url = (base_url or config.api.base_url).rstrip('/')
        self.api_key = api_key if api_key is not None else config.api.api_key
        self.model = model or config.api.model
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.logger = get_logger().translation_logger

        if session is None:
            # Retries are owned by the cascade, not the transport
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=0, pool_connections=10, pool_maxsize=10)
            session.mount('http://', adapter)
            session.mount('https://', adapter)
        self.session = session

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/models"

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self.api_key}",
            'Content-Type': 'application/json',
        }

    def is_healthy(self) -> bool:
        """Check if the API endpoint is reachable with the configured key."""
        if not self.api_key:
            return False
        try:
            response = self.session.get(
                self.models_url,
                headers=self._headers(),
                timeout=config.api.health_check_timeout
            )
            return response.status_code == 200
        except requests.RequestException as e:
            self.logger.warning(f"Translation API health check failed: {e}")
            return False

    def chat(
        self,
        system_prompt: str,
        user_text: str,
        target_lang: str = None,
        timeout: float = None,
        max_tokens: int = None,
        temperature: float = None
    ) -> ChatResponse:
        """
        Send one system + user exchange.

        Args:
            system_prompt: Instructions for the model
            user_text: Content to translate
            target_lang: Target language, used for token sizing
            timeout: Read timeout (defaults to the configured timeout)
            max_tokens: Response budget (sized from the input if not specified)
            temperature: Sampling temperature

        Returns:
            ChatResponse; ``failure`` is set whenever ``success`` is False
        """
        if not self.api_key:
            return ChatResponse.failed(FailureKind.CONFIG, "Translation API key is not configured")

        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_text},
            ],
            'temperature': temperature if temperature is not None else config.api.temperature,
            'max_tokens': max_tokens or calculate_safe_max_tokens(user_text, target_lang),
        }
        read_timeout = timeout or config.api.timeout

        self.rate_limiter.acquire()
        self.logger.debug(
            f"Chat request {len(user_text)} chars -> {target_lang or '?'} (max_tokens={payload['max_tokens']})"
        )

        try:
            response = self.session.post(
                self.chat_url,
                json=payload,
                headers=self._headers(),
                timeout=(config.api.connect_timeout, read_timeout)
            )
        except requests.Timeout:
            return ChatResponse.failed(FailureKind.TRANSIENT, f"Request timed out after {read_timeout}s")
        except requests.RequestException as e:
            return ChatResponse.failed(FailureKind.TRANSIENT, str(e))

        if response.status_code in CONFIG_STATUS_CODES:
            self.logger.error(f"Translation API rejected credentials ({response.status_code})")
            return ChatResponse.failed(
                FailureKind.CONFIG, f"API error {response.status_code}", response.status_code
            )
        if not 200 <= response.status_code < 300:
            return ChatResponse.failed(
                FailureKind.TRANSIENT, f"API error {response.status_code}: {response.text[:200]}",
                response.status_code
            )

        try:
            body = response.json()
            choice = body['choices'][0]
            content = choice['message'].get('content') or ''
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            return ChatResponse.failed(
                FailureKind.TRANSIENT, f"Invalid JSON response: {e}", response.status_code
            )

        finish_reason = choice.get('finish_reason')
        usage = body.get('usage') or {}

        if TEXT_TOO_LONG_SENTINEL in content:
            return ChatResponse(
                success=False, error="Model reported the text as too long", failure=FailureKind.LENGTH,
                status_code=response.status_code, model=body.get('model'), finish_reason=finish_reason, usage=usage
            )
        if finish_reason == 'length':
            return ChatResponse(
                success=False, text=content, error="Response truncated at max_tokens", failure=FailureKind.LENGTH,
                status_code=response.status_code, model=body.get('model'), finish_reason=finish_reason, usage=usage
            )

        text = clean_translation_response(content, user_text)
        if not text:
            return ChatResponse.failed(FailureKind.EMPTY, "Empty translation", response.status_code)

        return ChatResponse(
            success=True,
            text=text,
            status_code=response.status_code,
            model=body.get('model', self.model),
            finish_reason=finish_reason,
            usage=usage
        )

    def close(self):
        """Close the session."""
        self.session.close()


# Global client instance
_client_instance: Optional[TranslationApiClient] = None


def get_api_client() -> TranslationApiClient:
    """Get or create the global API client instance."""
    global _client_instance
    if _client_instance is None:
        _client_instance = TranslationApiClient()
    return _client_instance
