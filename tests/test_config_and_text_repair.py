"""Tests for configuration presets and service output cleanup."""

import pytest

from page_proofreader.config import DEFAULT_MODEL, ProofreaderConfig
from page_proofreader.errors import ConfigError
from page_proofreader.text_repair import (
    collapse_repeated_words,
    normalize_whitespace,
    sanitize_corrected_text,
)


class TestProofreaderConfig:
    """Tests for ProofreaderConfig."""

    def test_defaults(self):
        config = ProofreaderConfig()

        assert config.max_candidates == 20
        assert config.max_processed == 50
        assert config.max_annotations == 80
        assert config.model == DEFAULT_MODEL
        assert not config.is_paced

    def test_interactive_preset(self):
        config = ProofreaderConfig.interactive()

        assert config.scroll_settle_delay == 0.4
        assert config.element_pause == 0.8
        assert config.is_paced

    def test_thorough_preset_with_override(self):
        config = ProofreaderConfig.thorough(max_processed=60)

        assert config.max_candidates == 100
        assert config.max_processed == 60

    @pytest.mark.parametrize("overrides", [
        {"max_candidates": 0},
        {"min_words": -1},
        {"max_uppercase_ratio": 0},
        {"max_uppercase_ratio": 1.5},
        {"element_pause": -0.1},
        {"row_tolerance": -1},
        {"model": ""},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigError):
            ProofreaderConfig(**overrides)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            ProofreaderConfig(max_annotations=0)


class TestCollapseRepeatedWords:
    """Tests for collapse_repeated_words."""

    def test_doubled_word(self):
        assert collapse_repeated_words("the the cat") == "the cat"

    def test_case_insensitive(self):
        assert collapse_repeated_words("The the cat") == "The cat"

    def test_tripled_word(self):
        assert collapse_repeated_words("very very very good") == "very good"

    def test_distinct_words_untouched(self):
        assert collapse_repeated_words("then the cat") == "then the cat"

    def test_needs_whitespace_between(self):
        """Letters inside one word are not a repetition."""
        assert collapse_repeated_words("Mississippi bookkeeper") == "Mississippi bookkeeper"


class TestNormalizeWhitespace:
    """Tests for normalize_whitespace."""

    def test_space_before_punctuation(self):
        assert normalize_whitespace("Hello , world !") == "Hello, world!"

    def test_space_after_opener(self):
        assert normalize_whitespace("( aside ) and [ note ]") == "(aside ) and [note ]"

    def test_collapses_runs_and_trims(self):
        assert normalize_whitespace("  one \n\n two\tthree  ") == "one two three"

    def test_empty(self):
        assert normalize_whitespace("") == ""


class TestSanitizeCorrectedText:
    """Tests for the full cleanup pipeline."""

    def test_strips_label(self):
        assert sanitize_corrected_text("PROOFREAD_TEXT: Fixed text.") == "Fixed text."

    def test_full_cleanup(self):
        raw = "PROOFREAD_TEXT:  It is is a  test ,  really ."
        assert sanitize_corrected_text(raw) == "It is a test, really."

    def test_clean_text_unchanged(self):
        text = "There are two errors in this sentence."
        assert sanitize_corrected_text(text) == text
