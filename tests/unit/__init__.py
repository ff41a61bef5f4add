"""
Unit tests package.

Contains unit tests for individual modules and functions in isolation.
These tests should mock external dependencies and focus on testing
the internal logic of single components.
"""
