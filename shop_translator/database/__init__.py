"""
Database Module
===============
Database connection and repository implementations.
"""
from shop_translator.database.connection import Database, get_database, reset_database
from shop_translator.database.repositories import (
    ResourceStore,
    TranslationStore,
    ResourceRepository,
    TranslationRepository,
    get_resource_repository,
    get_translation_repository
)

__all__ = [
    'Database',
    'get_database',
    'reset_database',
    'ResourceStore',
    'TranslationStore',
    'ResourceRepository',
    'TranslationRepository',
    'get_resource_repository',
    'get_translation_repository'
]
