"""Tests for structured extraction error types."""

import pytest

from nutribot.extraction.extraction_errors import (
    ExtractionError,
    ExtractionErrorCode,
    InputError,
    NutritionPipelineError,
    ParseError,
)


class TestExtractionErrorCode:
    """Tests for ExtractionErrorCode enum."""

    def test_all_required_codes_exist(self):
        """Test that every failure category has a code."""
        assert hasattr(ExtractionErrorCode, 'INVALID_INPUT')
        assert hasattr(ExtractionErrorCode, 'SERVICE_FAILURE')
        assert hasattr(ExtractionErrorCode, 'PARSE_FAILURE')

    def test_error_codes_are_unique_strings(self):
        """Test that codes are unique string values."""
        codes = [code.value for code in ExtractionErrorCode]
        assert all(isinstance(c, str) for c in codes)
        assert len(codes) == len(set(codes))


class TestNutritionPipelineError:
    """Tests for the base error."""

    def test_str_includes_code(self):
        """Test the "[CODE] message" rendering."""
        error = NutritionPipelineError(ExtractionErrorCode.PARSE_FAILURE, "bad output")

        assert str(error) == "[PARSE_FAILURE] bad output"
        assert error.context == {}

    def test_repr_is_debuggable(self):
        """Test that repr names class, code and context."""
        error = NutritionPipelineError(
            ExtractionErrorCode.SERVICE_FAILURE, "down", {"operation": "extract_one"}
        )

        assert "NutritionPipelineError(" in repr(error)
        assert "extract_one" in repr(error)

    def test_to_dict(self):
        """Test API serialization."""
        error = NutritionPipelineError(ExtractionErrorCode.INVALID_INPUT, "oops", {"field": "x"})

        assert error.to_dict() == {
            "error_code": "INVALID_INPUT",
            "message": "oops",
            "retryable": False,
            "context": {"field": "x"},
        }

    def test_subclasses_share_base(self):
        """Test that one except clause catches every pipeline error."""
        for error in (
            InputError("description", "", "must not be empty"),
            ExtractionError("extract_one", "boom"),
            ParseError("malformed structured output"),
        ):
            with pytest.raises(NutritionPipelineError):
                raise error


class TestInputError:
    """Tests for InputError."""

    def test_fields_and_message(self):
        """Test context and message for a bad weight."""
        error = InputError("weight_grams", -5, "must be greater than 0 and at most 5000 g")

        assert error.code == ExtractionErrorCode.INVALID_INPUT
        assert error.field == "weight_grams"
        assert error.context["value"] == -5
        assert "(value: -5)" in error.message
        assert error.retryable is False

    def test_empty_value_not_echoed(self):
        """Test that an empty description is not repeated in the message."""
        error = InputError("description", "", "must not be empty")

        assert error.message == "Invalid description: must not be empty"


class TestExtractionError:
    """Tests for ExtractionError."""

    def test_is_retryable(self):
        """Test that service failures are retryable."""
        assert ExtractionError("extract_one", "timeout").retryable is True

    def test_context_contents(self):
        """Test operation, provider code and truncated description."""
        error = ExtractionError("extract_from_message", "quota", "RATE_LIMITED", "x" * 500)

        assert error.code == ExtractionErrorCode.SERVICE_FAILURE
        assert error.context["operation"] == "extract_from_message"
        assert error.context["service_error_code"] == "RATE_LIMITED"
        assert len(error.context["description"]) == 200
        assert "quota" in error.message

    def test_optional_context_omitted(self):
        """Test that unknown provider codes are left out."""
        assert "service_error_code" not in ExtractionError("extract_one", "boom").context


class TestParseError:
    """Tests for ParseError."""

    def test_reason_and_attempted(self):
        """Test that attempted data is copied and exposed."""
        attempted = {"food_name": "Rice"}
        error = ParseError("missing required field: calories", attempted)
        attempted["food_name"] = "changed"

        assert error.code == ExtractionErrorCode.PARSE_FAILURE
        assert error.reason == "missing required field: calories"
        assert error.attempted == {"food_name": "Rice"}
        assert error.retryable is False
