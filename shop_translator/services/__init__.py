"""
Shop Translator - Services
"""
from shop_translator.services.api_client import ChatResponse, TranslationApiClient
from shop_translator.services.cache_service import TranslationCache
from shop_translator.services.rate_limiter import RequestRateLimiter
from shop_translator.services.validator import CompletenessValidator, ValidationResult
from shop_translator.services.strategies import StrategyCascade
from shop_translator.services.handles import HandleTranslator
from shop_translator.services.residue import ResidueScanner
from shop_translator.services.orchestrator import TranslationOrchestrator, get_orchestrator

__all__ = [
    "ChatResponse",
    "TranslationApiClient",
    "TranslationCache",
    "RequestRateLimiter",
    "CompletenessValidator",
    "ValidationResult",
    "StrategyCascade",
    "HandleTranslator",
    "ResidueScanner",
    "TranslationOrchestrator",
    "get_orchestrator"
]
