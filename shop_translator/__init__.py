"""
Shop Translator - E-commerce content translation service
========================================================
Translates product titles, descriptions, handles and SEO metadata through
an LLM chat-completion API:
1. Jobs are queued on Redis, or in memory when Redis is unavailable
2. Long HTML is protected, chunked, translated and validated piece by piece

Version: 1.0.0
"""

__version__ = "1.0.0"

from shop_translator.app import create_app, run_server

__all__ = ["create_app", "run_server", "__version__"]
