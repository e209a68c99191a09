"""
terra-inform test suite.

Test Organization:
    - tests/conftest.py: Shared fixtures (isolated environment, scripted provider)
    - tests/unit/test_*.py: Unit tests for individual modules
"""
