"""
Unit tests for custom exceptions.

Tests exception hierarchy and error formatting.
"""
import pytest

from repriseval.exceptions import (
    EngineError,
    InvalidContextError,
    RepriseValError,
    RuleDefinitionError,
    UnknownSectorError,
)


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    def test_base_exception(self):
        """Test base RepriseValError."""
        exc = RepriseValError("Test error")

        assert exc.error_code == "RPV-000"
        assert exc.message == "Test error"
        assert exc.http_status == 500

    def test_invalid_context_error(self):
        """Test InvalidContextError carries the validation errors."""
        errors = [{"loc": ["records", "0", "confidence"], "msg": "too large", "type": "less_than_equal"}]
        exc = InvalidContextError(errors)

        assert isinstance(exc, RepriseValError)
        assert exc.error_code == "RPV-100"
        assert exc.http_status == 422
        assert exc.details["errors"] == errors

    def test_unknown_sector_error(self):
        exc = UnknownSectorError("99.99")

        assert isinstance(exc, RepriseValError)
        assert exc.error_code == "RPV-200"
        assert exc.http_status == 404
        assert "99.99" in exc.message

    def test_rule_definition_error(self):
        exc = RuleDefinitionError("RENT_001", "unknown metric 'x'")

        assert exc.error_code == "RPV-300"
        assert exc.details == {"rule_id": "RENT_001", "reason": "unknown metric 'x'"}

    def test_engine_error(self):
        exc = EngineError("alerts")

        assert exc.error_code == "RPV-900"
        assert exc.details["stage"] == "alerts"


class TestExceptionFormatting:
    """Tests for exception serialization."""

    def test_to_dict(self):
        """Test exception to_dict method."""
        exc = RepriseValError("Test error", details={"key": "value"})

        result = exc.to_dict()

        assert result["error"] is True
        assert result["error_code"] == "RPV-000"
        assert result["message"] == "Test error"
        assert result["details"] == {"key": "value"}

    def test_custom_error_code(self):
        """Test custom error code override."""
        exc = RepriseValError("Test", error_code="CUSTOM-001")

        assert exc.error_code == "CUSTOM-001"

    def test_empty_details(self):
        """Test exception with no details."""
        exc = RepriseValError("Test")

        assert exc.details == {}

    def test_raise_and_catch(self):
        with pytest.raises(RepriseValError) as exc_info:
            raise UnknownSectorError("00.00")

        assert exc_info.value.to_dict()["error_code"] == "RPV-200"
