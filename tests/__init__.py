"""
Shop Translator - Test Suite
============================
Unit and integration tests for the Shop Translator service.
Run with: pytest tests/ -v
"""
