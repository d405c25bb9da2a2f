"""
Token-level sequence aligner.

Computes a minimal edit script between an original and a corrected token
sequence using a longest-common-subsequence table:
- Identifies exact runs of equal, inserted and deleted tokens
- Pairs a deletion immediately followed by an insertion into a replacement
- Replays either side of the script for verification

When the LCS table offers two equally good moves, the original token is
treated as deleted. This keeps the visual diff output deterministic.

The table costs O(n*m) time and memory. Callers align single text blocks,
not whole documents.
"""

import logging
from typing import Iterable

from .models import EditOp, EditOpKind, Token
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


def _lcs_table(original: list[Token], corrected: list[Token]) -> list[list[int]]:
    """Build the suffix LCS table, filled from the bottom-right corner."""
    n, m = len(original), len(corrected)
    dp = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = dp[i], dp[i + 1]
        a = original[i].text
        for j in range(m - 1, -1, -1):
            if a == corrected[j].text:
                row[j] = below[j + 1] + 1
            else:
                row[j] = below[j] if below[j] >= row[j + 1] else row[j + 1]
    return dp


def _raw_steps(
    original: list[Token],
    corrected: list[Token],
) -> list[tuple[EditOpKind, str]]:
    """Walk the LCS table forward from (0, 0), one token per step."""
    dp = _lcs_table(original, corrected)
    n, m = len(original), len(corrected)
    steps: list[tuple[EditOpKind, str]] = []
    i = j = 0
    while i < n and j < m:
        if original[i].text == corrected[j].text:
            steps.append((EditOpKind.EQUAL, corrected[j].text))
            i += 1
            j += 1
        elif dp[i + 1][j] >= dp[i][j + 1]:
            # Ties go to deletion
            steps.append((EditOpKind.DELETE, original[i].text))
            i += 1
        else:
            steps.append((EditOpKind.INSERT, corrected[j].text))
            j += 1
    while i < n:
        steps.append((EditOpKind.DELETE, original[i].text))
        i += 1
    while j < m:
        steps.append((EditOpKind.INSERT, corrected[j].text))
        j += 1
    return steps


def _coalesce(steps: Iterable[tuple[EditOpKind, str]]) -> list[tuple[EditOpKind, str]]:
    runs: list[tuple[EditOpKind, str]] = []
    for kind, text in steps:
        if runs and runs[-1][0] == kind:
            runs[-1] = (kind, runs[-1][1] + text)
        else:
            runs.append((kind, text))
    return runs


def _to_ops(runs: list[tuple[EditOpKind, str]]) -> list[EditOp]:
    ops: list[EditOp] = []
    k = 0
    while k < len(runs):
        kind, text = runs[k]
        if (
            kind == EditOpKind.DELETE
            and k + 1 < len(runs)
            and runs[k + 1][0] == EditOpKind.INSERT
        ):
            ops.append(EditOp(EditOpKind.REPLACE, original=text, corrected=runs[k + 1][1]))
            k += 2
            continue
        if kind == EditOpKind.EQUAL:
            ops.append(EditOp(kind, original=text, corrected=text))
        elif kind == EditOpKind.DELETE:
            ops.append(EditOp(kind, original=text))
        else:
            ops.append(EditOp(kind, corrected=text))
        k += 1
    return ops


def align(original: list[Token], corrected: list[Token]) -> list[EditOp]:
    """
    Compute a coalesced edit script from original to corrected tokens.

    Args:
        original: Tokens of the original text.
        corrected: Tokens of the corrected text.

    Returns:
        EditOps in left-to-right order.
    """
    if not original and not corrected:
        return []
    if not original:
        return [EditOp(EditOpKind.INSERT, corrected="".join(t.text for t in corrected))]
    if not corrected:
        return [EditOp(EditOpKind.DELETE, original="".join(t.text for t in original))]

    ops = _to_ops(_coalesce(_raw_steps(original, corrected)))
    logger.debug(f"Aligned {len(original)}x{len(corrected)} tokens into {len(ops)} ops")
    return ops


def align_text(original: str, corrected: str) -> list[EditOp]:
    """Tokenize both strings and align them."""
    return align(tokenize(original), tokenize(corrected))


def replay_original(ops: list[EditOp]) -> str:
    """Rebuild the original text from an edit script (drops insertions)."""
    return "".join(op.original_text for op in ops if op.kind != EditOpKind.INSERT)


def replay_corrected(ops: list[EditOp]) -> str:
    """Rebuild the corrected text from an edit script (drops deletions)."""
    return "".join(op.corrected_text for op in ops if op.kind != EditOpKind.DELETE)


def summarize_ops(ops: list[EditOp]) -> dict:
    """
    Generate a summary of changes in an edit script.

    Args:
        ops: EditOps from align().

    Returns:
        Dictionary with change counts and replacement pairs.
    """
    replacements = [op for op in ops if op.kind == EditOpKind.REPLACE]
    insertions = [op for op in ops if op.kind == EditOpKind.INSERT]
    deletions = [op for op in ops if op.kind == EditOpKind.DELETE]
    visible = [op for op in ops if op.is_change and not op.is_whitespace_only]

    return {
        "total_changes": len(replacements) + len(insertions) + len(deletions),
        "visible_changes": len(visible),
        "whitespace_only": len(replacements) + len(insertions) + len(deletions) - len(visible),
        "replacements": len(replacements),
        "insertions": len(insertions),
        "deletions": len(deletions),
        "replacement_texts": [
            {"old": op.original, "new": op.corrected}
            for op in replacements
        ],
    }
