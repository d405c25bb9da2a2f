"""Tests for correction span normalization and splicing."""

import pytest

from page_proofreader.errors import MalformedResponseError
from page_proofreader.models import CorrectionSpan, CorrectionType
from page_proofreader.normalizer import (
    MERGE_SEPARATOR,
    apply_spans,
    normalize_corrections,
    validate_spans,
)


def _bounds(spans):
    return [(s.start_index, s.end_index) for s in spans]


class TestNormalizeCorrections:
    """Tests for normalize_corrections."""

    def test_overlapping_spans_merge(self):
        """Overlapping spans fold into one; disjoint ones stay."""
        spans = [
            CorrectionSpan(20, 25, "e"),
            CorrectionSpan(0, 5, "a"),
            CorrectionSpan(4, 9, "b"),
        ]

        result = normalize_corrections(spans)

        assert _bounds(result) == [(0, 9), (20, 25)]
        assert result[0].correction_text == f"a{MERGE_SEPARATOR}b"

    def test_adjacent_spans_concatenate(self):
        """Spans that touch merge with their texts joined directly."""
        result = normalize_corrections([
            CorrectionSpan(0, 3, "The"),
            CorrectionSpan(3, 4, " "),
        ])

        assert _bounds(result) == [(0, 4)]
        assert result[0].correction_text == "The "

    def test_earlier_type_wins_and_explanations_join(self):
        """The first span's type is kept; explanations are combined."""
        result = normalize_corrections([
            CorrectionSpan(0, 5, "x", CorrectionType.SPELLING, "typo"),
            CorrectionSpan(2, 7, "y", CorrectionType.GRAMMAR, "agreement"),
        ])

        assert result[0].type == CorrectionType.SPELLING
        assert result[0].explanation == f"typo{MERGE_SEPARATOR}agreement"

    def test_output_is_strictly_separated(self):
        """Every output span ends before the next one starts."""
        spans = [CorrectionSpan(i, i + 3, "z") for i in range(0, 30, 2)]
        spans.append(CorrectionSpan(40, 42, "q"))

        result = normalize_corrections(spans)

        for left, right in zip(result, result[1:]):
            assert left.end_index < right.start_index

    def test_idempotent(self):
        """Normalizing twice gives the same result."""
        spans = [
            CorrectionSpan(0, 5, "a"),
            CorrectionSpan(4, 9, "b"),
            CorrectionSpan(9, 10, "c"),
            CorrectionSpan(20, 25, "e"),
        ]

        once = normalize_corrections(spans)
        twice = normalize_corrections(once)

        assert _bounds(once) == _bounds(twice)
        assert [s.correction_text for s in once] == [s.correction_text for s in twice]

    def test_input_not_mutated(self):
        """The caller's spans are left untouched."""
        first = CorrectionSpan(0, 5, "a")
        normalize_corrections([first, CorrectionSpan(3, 8, "b")])

        assert (first.end_index, first.correction_text) == (5, "a")

    def test_empty(self):
        """No spans in, no spans out."""
        assert normalize_corrections([]) == []


class TestValidateSpans:
    """Tests for validate_spans."""

    def test_valid_spans_returned(self):
        """In-range spans pass through."""
        spans = [CorrectionSpan(0, 3, "x")]
        assert validate_spans(spans, "abcdef") == spans

    @pytest.mark.parametrize("start,end", [(-1, 2), (3, 3), (4, 2), (0, 99)])
    def test_invalid_spans_raise(self, start, end):
        """Empty, reversed, negative or overlong spans are rejected."""
        with pytest.raises(MalformedResponseError):
            validate_spans([CorrectionSpan(start, end, "x")], "abcdef")


class TestApplySpans:
    """Tests for apply_spans."""

    def test_splices_right_to_left(self):
        """Indices refer to the original text throughout."""
        text = "Their are two erors"
        spans = [CorrectionSpan(0, 5, "There"), CorrectionSpan(14, 19, "errors")]

        assert apply_spans(text, spans) == "There are two errors"

    def test_deletion(self):
        """Empty correction text removes the range."""
        assert apply_spans("the the cat", [CorrectionSpan(0, 4, "")]) == "the cat"

    def test_no_spans(self):
        """Text is unchanged without spans."""
        assert apply_spans("unchanged", []) == "unchanged"
