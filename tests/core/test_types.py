"""Tests for core types."""

from core.types import ErrorCategory


class TestErrorCategory:
    def test_values(self):
        assert {c.value for c in ErrorCategory} == {"transient", "auth", "permanent", "unknown"}

    def test_lookup_by_value(self):
        assert ErrorCategory("permanent") is ErrorCategory.PERMANENT
