"""Test fixtures for Gutsy."""

from tests.fixtures.mocks import MockClaudeService

__all__ = [
    "MockClaudeService",
]
