"""
Unit tests for narrative validation.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.core.schemas import ValidationError, unwrap_narrative, validate_narrative


class TestValidateNarrative:
    """Tests for validate_narrative()."""

    def test_validate_when_fragment_map_then_passes(self, fluent_narrative):
        """A well-formed fragment map validates in strict mode."""
        validate_narrative(fluent_narrative, strict=True)

    def test_validate_when_kind_map_then_passes(self):
        """A per-kind narrative validates in strict mode."""
        data = {
            "canonical": {"0": {"text": "a {b} c"}},
            "spelling": {"0": {"text": "a bb c"}},
        }
        validate_narrative(data, strict=True)

    def test_validate_when_not_object_then_raises_error(self):
        with pytest.raises(ValidationError, match="must be an object"):
            validate_narrative(["a", "b"])

    def test_validate_when_empty_then_raises_error(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_narrative({})

    def test_validate_when_missing_text_then_reports_path(self):
        """Missing text is reported with the entry path."""
        # Act
        with pytest.raises(ValidationError) as exc_info:
            validate_narrative({"0": {"vocab": "x"}})

        # Assert
        assert exc_info.value.path == "0"
        assert exc_info.value.errors == ["Missing field: text"]

    def test_validate_when_non_string_variant_then_raises_error(self):
        with pytest.raises(ValidationError, match="must be a string"):
            validate_narrative({"0": {"text": "a", "spelling": 3}})

    def test_validate_when_strict_and_bad_key_then_schema_error(self):
        """Non-numeric keys fail JSON Schema validation."""
        with pytest.raises(ValidationError, match="Schema validation failed"):
            validate_narrative({"intro": {"text": "hello"}}, strict=True)

    def test_unwrap_when_wrapped_then_returns_inner(self, fluent_narrative):
        wrapped = {"content": {"narrative": fluent_narrative}}
        assert unwrap_narrative(wrapped) is fluent_narrative
