# -*- coding: utf-8 -*-
"""
Text cleanup for correction service output.

Handles:
- Stray labels the model prepends to its answer
- Immediately repeated words ("the the")
- Spacing around punctuation and brackets
- Whitespace normalization
"""

import re

# Leading label some models echo back, e.g. "PROOFREAD_TEXT: ..."
LABEL_RE = re.compile(r"^\s*PROOFREAD[_\s-]*TEXT:\s*", re.IGNORECASE)

# Same word twice in a row, separated only by whitespace
REPEATED_WORD_RE = re.compile(r"\b([A-Za-z]+)\s+\1\b", re.IGNORECASE)

SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.;:!?])")
SPACE_AFTER_OPENER_RE = re.compile(r"([(\[“])\s+")
WHITESPACE_RUN_RE = re.compile(r"\s+")

# Guard against pathological inputs in the repeated-word loop
MAX_REPEAT_PASSES = 10


def collapse_repeated_words(text: str) -> str:
    """
    Collapse immediately repeated words into one.

    Args:
        text: Text to clean.

    Returns:
        Text with "word word" runs reduced to "word".
    """
    result = text
    for _ in range(MAX_REPEAT_PASSES):
        collapsed = REPEATED_WORD_RE.sub(r"\1", result)
        if collapsed == result:
            break
        result = collapsed
    return result


def normalize_whitespace(text: str) -> str:
    """
    Normalize whitespace in text.

    Fixes:
    - Spaces before closing punctuation ("word ," -> "word,")
    - Spaces after opening brackets and quotes ("( word" -> "(word")
    - Runs of whitespace (including newlines) -> single space
    - Leading/trailing whitespace

    Args:
        text: Text to normalize.

    Returns:
        Normalized text.
    """
    if not text:
        return text

    result = SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    result = SPACE_AFTER_OPENER_RE.sub(r"\1", result)
    result = WHITESPACE_RUN_RE.sub(" ", result)
    return result.strip()


def sanitize_corrected_text(text: str) -> str:
    """
    Full cleanup pipeline for a service-corrected string.

    Applies in order:
    1. Leading label removal
    2. Repeated word collapse
    3. Whitespace normalization

    Args:
        text: Corrected text returned by the service.

    Returns:
        Cleaned text. Empty input is returned unchanged.
    """
    if not text:
        return text

    result = LABEL_RE.sub("", text)
    result = collapse_repeated_words(result)
    return normalize_whitespace(result)
