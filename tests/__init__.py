"""
Test suite for Bread Quality Inspection.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_scoring_service.py -v
"""
