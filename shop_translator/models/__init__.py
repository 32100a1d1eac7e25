"""
Shop Translator - Data Models
"""
from shop_translator.models.translation import (
    Resource,
    ProtectedText,
    Segment,
    StrategyOutcome,
    FieldResult,
    TranslationResult,
    TranslationJob
)
from shop_translator.models.schemas import (
    TranslationJobRequest,
    BatchTranslationJobRequest,
    JobAdmission
)

__all__ = [
    "Resource",
    "ProtectedText",
    "Segment",
    "StrategyOutcome",
    "FieldResult",
    "TranslationResult",
    "TranslationJob",
    "TranslationJobRequest",
    "BatchTranslationJobRequest",
    "JobAdmission"
]
