"""
Correction span normalization.

Merges overlapping and adjacent service corrections into a sorted,
non-overlapping list, validates span bounds against the original text,
and splices corrections into a string by index.

Merging is lossy when spans truly overlap: the merged correction text is
the two corrections joined by MERGE_SEPARATOR, and no record remains of
which original sub-range each part came from. Adjacent spans concatenate
exactly.
"""

import logging
from typing import Iterable, Optional

from .errors import MalformedResponseError
from .models import CorrectionSpan

logger = logging.getLogger(__name__)

MERGE_SEPARATOR = " | "


def _join(left: Optional[str], right: Optional[str]) -> Optional[str]:
    if left and right:
        return f"{left}{MERGE_SEPARATOR}{right}"
    return left or right


def normalize_corrections(spans: Iterable[CorrectionSpan]) -> list[CorrectionSpan]:
    """
    Merge overlapping and adjacent correction spans.

    Spans are sorted by start index; a span starting at or before the end
    of the running span is folded into it. The input spans are not mutated.

    Args:
        spans: Correction spans over the same original text.

    Returns:
        Spans in ascending order with output[i].end_index < output[i + 1].start_index.
    """
    ordered = sorted(spans, key=lambda s: (s.start_index, s.end_index))
    if not ordered:
        return []

    merged: list[CorrectionSpan] = []
    current = ordered[0].copy()
    for nxt in ordered[1:]:
        if nxt.start_index <= current.end_index:
            if nxt.start_index == current.end_index:
                current.correction_text = current.correction_text + nxt.correction_text
            else:
                current.correction_text = _join(
                    current.correction_text, nxt.correction_text
                ) or ""
                logger.debug(
                    f"Lossy merge of overlapping corrections at "
                    f"[{current.start_index}, {nxt.end_index})"
                )
            current.explanation = _join(current.explanation, nxt.explanation)
            current.end_index = max(current.end_index, nxt.end_index)
        else:
            merged.append(current)
            current = nxt.copy()
    merged.append(current)
    return merged


def validate_spans(spans: Iterable[CorrectionSpan], text: str) -> list[CorrectionSpan]:
    """
    Check that every span lies inside the original text.

    Args:
        spans: Spans to check.
        text: The original text the spans index into.

    Returns:
        The spans as a list.

    Raises:
        MalformedResponseError: If a span is empty, reversed, negative or
            runs past the end of the text.
    """
    checked = list(spans)
    for span in checked:
        if span.start_index < 0 or span.end_index > len(text) or span.start_index >= span.end_index:
            raise MalformedResponseError(
                f"Correction span [{span.start_index}, {span.end_index}) is invalid "
                f"for text of length {len(text)}"
            )
    return checked


def apply_spans(text: str, spans: Iterable[CorrectionSpan]) -> str:
    """
    Splice corrections into text by index.

    Spans are normalized first, then applied right to left so earlier
    indices stay valid.

    Args:
        text: Original text.
        spans: Corrections over the original text.

    Returns:
        Corrected text.
    """
    result = text
    for span in reversed(normalize_corrections(spans)):
        result = result[:span.start_index] + span.correction_text + result[span.end_index:]
    return result
