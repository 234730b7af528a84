"""
Unit tests for narrative parsing.

Verified: 2026-10-19
"""

import pytest

from streaming_toolkit.core.models import VariantKind
from streaming_toolkit.engine.loading import ParseError, load_narrative_file, parse_narrative


class TestParseNarrative:
    """Tests for parse_narrative()."""

    def test_parse_when_fragment_map_then_sorted_numerically(self):
        """Keys are ordered as integers, not strings."""
        # Arrange
        data = {"10": {"text": "ten"}, "2": {"text": "two"}, "1": {"text": "one"}}

        # Act
        records = parse_narrative(data)

        # Assert
        assert [r.index for r in records] == [1, 2, 10]

    def test_parse_when_fragment_map_then_substitutes_collected(self, fluent_narrative):
        """Vocab and spelling entries become focal-word substitutes."""
        # Act
        records = parse_narrative(fluent_narrative)

        # Assert
        first = records[0]
        assert first.substitutes == {
            VariantKind.VOCAB: "lamppost",
            VariantKind.SPELLING: "lihgthouse",
        }
        assert first.full_variants == {}

    def test_parse_when_checkpoint_flags_then_detected(self):
        """Both flag spellings mark a checkpoint."""
        # Arrange
        data = {
            "0": {"text": "a", "flag": "checkpoint"},
            "1": {"text": "b", "flag": "{checkpoint}"},
            "2": {"text": "c"},
        }

        # Act
        records = parse_narrative(data)

        # Assert
        assert [r.is_checkpoint for r in records] == [True, True, False]

    def test_parse_when_kind_map_then_full_variants(self):
        """Per-kind narratives produce full-text variants."""
        # Arrange
        data = {"content": {"narrative": {
            "canonical": {"0": {"text": "the {cat} sat"}, "1": {"text": "down"}},
            "spelling": {"0": {"text": "the {kat} sat"}},
        }}}

        # Act
        records = parse_narrative(data)

        # Assert
        assert records[0].full_variants == {VariantKind.SPELLING: "the {kat} sat"}
        assert records[1].full_variants == {}

    def test_parse_when_invalid_then_raises_parse_error(self):
        with pytest.raises(ParseError, match="Invalid narrative"):
            parse_narrative({"0": "not an object"})

    def test_parse_when_non_numeric_key_then_raises_parse_error(self):
        with pytest.raises(ParseError, match="Invalid fragment index"):
            parse_narrative({"first": {"text": "a"}})


class TestLoadNarrativeFile:
    """Tests for load_narrative_file()."""

    def test_load_when_file_exists_then_parses(self, narrative_file):
        records = load_narrative_file(narrative_file)
        assert len(records) == 5

    def test_load_when_missing_then_raises_parse_error(self, tmp_path):
        with pytest.raises(ParseError, match="not found"):
            load_narrative_file(tmp_path / "missing.json")

    def test_load_when_bad_json_then_raises_parse_error(self, tmp_path):
        # Arrange
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        # Act & Assert
        with pytest.raises(ParseError, match="Invalid JSON"):
            load_narrative_file(path)
