"""
Tokenizer for token-level diffs.

Splits text into words (with apostrophes), punctuation runs, and
whitespace runs. Concatenating the token texts always gives back the
input string.
"""

import re

from .models import Token, TokenKind

# Word chars plus straight and curly apostrophes | other non-space run | whitespace run
TOKEN_RE = re.compile(r"[\w'’]+|[^\w\s'’]+|\s+")

_WORD_START_RE = re.compile(r"[\w'’]")


def _kind_of(text: str) -> TokenKind:
    if text[0].isspace():
        return TokenKind.WHITESPACE
    if _WORD_START_RE.match(text):
        return TokenKind.WORD
    return TokenKind.PUNCTUATION


def tokenize(text: str) -> list[Token]:
    """
    Split text into word, punctuation and whitespace tokens.

    Args:
        text: Text to split.

    Returns:
        Tokens in order. Empty input gives an empty list.
    """
    if not text:
        return []
    return [Token(_kind_of(m.group()), m.group()) for m in TOKEN_RE.finditer(text)]


def detokenize(tokens: list[Token]) -> str:
    """Join token texts back into a string."""
    return "".join(t.text for t in tokens)
