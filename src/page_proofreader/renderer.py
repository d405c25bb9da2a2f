"""
Annotation renderer.

Turns an edit script (from the aligner) or a list of correction spans
(from the service) into inline HTML markup for one element:
- Unchanged text is copied through, escaped
- Replaced, inserted and deleted text becomes an annotation span carrying
  the original text, corrected text, correction category and tooltip
- Whitespace-only changes are rendered as plain text
- After max_annotations annotations, remaining changes are rendered as
  plain corrected text and a "+N more changes" indicator is appended

Annotation markup contract (read by front ends and by the ledger's stray
cleanup):

    <span class="proofread-correction proofread-correction--replaced
                 proofread-correction-spelling"
          data-original="erors" data-corrected="errors" data-type="spelling"
          data-tooltip="SPELLING (newline) erors → errors"
          title="...">errors</span>
"""

import html
import logging
from typing import Iterable, Optional, Sequence, Union

from .models import (
    CorrectionSpan,
    CorrectionType,
    EditOp,
    EditOpKind,
    MarkupFragment,
)
from .normalizer import normalize_corrections

logger = logging.getLogger(__name__)

ANNOTATION_CLASS = "proofread-correction"
MORE_CHANGES_CLASS = "proofread-more-changes"
DEFAULT_MAX_ANNOTATIONS = 80

MODIFIER_REPLACED = "replaced"
MODIFIER_INSERTED = "inserted"
MODIFIER_DELETED = "deleted"


def _esc(text: str) -> str:
    return html.escape(text, quote=True)


def _type_label(category: Union[CorrectionType, str]) -> str:
    return category.value if isinstance(category, CorrectionType) else str(category)


def build_tooltip(
    modifier: str,
    original: str,
    corrected: str,
    category: Union[CorrectionType, str],
    explanation: Optional[str] = None,
) -> str:
    """
    Build the unescaped tooltip payload for an annotation.

    The first line is the upper-cased category, the second describes the
    change, and the explanation (when present) follows on its own line.
    """
    if modifier == MODIFIER_INSERTED:
        change = f"Inserted: {corrected}"
    elif modifier == MODIFIER_DELETED:
        change = f"Deleted: {original}"
    else:
        change = f"{original} → {corrected}"
    lines = [_type_label(category).upper(), change]
    if explanation:
        lines.append(explanation)
    return "\n".join(lines)


def build_annotation(
    modifier: str,
    original: str,
    corrected: str,
    category: Union[CorrectionType, str] = CorrectionType.OTHER,
    explanation: Optional[str] = None,
) -> str:
    """
    Build the HTML for one annotation span.

    Args:
        modifier: "replaced", "inserted" or "deleted".
        original: Original text covered by the change ("" for insertions).
        corrected: Corrected text ("" for deletions).
        category: Correction category, or a plain label such as "inserted"
            for changes the service did not describe.
        explanation: Optional human-readable explanation.

    Returns:
        Escaped HTML for the span.
    """
    shown = original if modifier == MODIFIER_DELETED else corrected
    label = _type_label(category)
    tooltip = build_tooltip(modifier, original, corrected, category, explanation)

    if modifier == MODIFIER_INSERTED:
        title = f'Inserted: "{corrected}"'
    elif modifier == MODIFIER_DELETED:
        title = f'Deleted: "{original}"'
    else:
        title = f'Original: "{original}" → Corrected: "{corrected}"'
    if explanation:
        title += f" - {explanation}"

    classes = (
        f"{ANNOTATION_CLASS} {ANNOTATION_CLASS}--{modifier} "
        f"{ANNOTATION_CLASS}-{label}"
    )
    return (
        f'<span class="{classes}"'
        f' data-original="{_esc(original)}"'
        f' data-corrected="{_esc(corrected)}"'
        f' data-type="{label}"'
        f' data-tooltip="{_esc(tooltip)}"'
        f' title="{_esc(title)}">{_esc(shown)}</span>'
    )


def build_more_indicator(omitted: int) -> str:
    """Build the "+N more changes" indicator span."""
    return (
        f'<span class="{MORE_CHANGES_CLASS}" data-original="">'
        f" +{omitted} more changes</span>"
    )


def _find_overlapping(
    corrections: Sequence[CorrectionSpan],
    start: int,
    end: int,
) -> Optional[CorrectionSpan]:
    """Find the first correction touching the original range [start, end)."""
    for correction in corrections:
        if start == end:
            # Zero-width insertion point
            if correction.start_index <= start <= correction.end_index:
                return correction
        elif correction.overlaps(start, end):
            return correction
    return None


def render_edit_ops(
    original: str,
    ops: Iterable[EditOp],
    corrections: Sequence[CorrectionSpan] = (),
    max_annotations: int = DEFAULT_MAX_ANNOTATIONS,
) -> MarkupFragment:
    """
    Render an edit script as annotated markup.

    Args:
        original: The original text the script was computed from.
        ops: EditOps from the aligner.
        corrections: Optional service spans used to label changes with a
            category and explanation.
        max_annotations: Annotation cap for this element.

    Returns:
        MarkupFragment with the rendered HTML and counts. An empty
        script renders the original text unchanged.
    """
    ops = list(ops)
    if not ops:
        return MarkupFragment(html=_esc(original))

    parts: list[str] = []
    annotated = 0
    omitted = 0
    orig_pos = 0

    for op in ops:
        seg_start = orig_pos
        orig_pos += len(op.original_text)

        if op.kind == EditOpKind.EQUAL:
            parts.append(_esc(op.corrected_text))
            continue

        if op.is_whitespace_only:
            # Deleted whitespace stays so words do not run together
            parts.append(_esc(op.original_text if op.kind == EditOpKind.DELETE else op.corrected_text))
            continue

        if annotated >= max_annotations:
            omitted += 1
            parts.append(_esc(op.corrected_text))
            continue

        if op.kind == EditOpKind.REPLACE:
            modifier = MODIFIER_REPLACED
        elif op.kind == EditOpKind.INSERT:
            modifier = MODIFIER_INSERTED
        else:
            modifier = MODIFIER_DELETED

        match = _find_overlapping(corrections, seg_start, orig_pos)
        if match:
            category: Union[CorrectionType, str] = match.type
            explanation = match.explanation
        else:
            # Undescribed insertions and deletions are labelled by what they do
            category = CorrectionType.OTHER if modifier == MODIFIER_REPLACED else modifier
            explanation = None
        parts.append(build_annotation(
            modifier, op.original_text, op.corrected_text, category, explanation
        ))
        annotated += 1

    if orig_pos != len(original):
        logger.warning(
            f"Edit script covers {orig_pos} of {len(original)} original characters"
        )
    if omitted:
        parts.append(build_more_indicator(omitted))
        logger.debug(f"Annotation cap reached: {omitted} changes rendered without markup")

    return MarkupFragment(html="".join(parts), annotation_count=annotated, omitted_count=omitted)


def render_spans(
    original: str,
    spans: Iterable[CorrectionSpan],
    max_annotations: int = DEFAULT_MAX_ANNOTATIONS,
) -> MarkupFragment:
    """
    Render correction spans directly over the original text.

    Gap text between spans is copied verbatim; each span's original range
    is wrapped in an annotation showing its correction.

    Args:
        original: The original text the spans index into.
        spans: Correction spans (normalized here if they are not already).
        max_annotations: Annotation cap for this element.

    Returns:
        MarkupFragment with the rendered HTML and counts.
    """
    parts: list[str] = []
    annotated = 0
    omitted = 0
    last = 0

    for span in normalize_corrections(spans):
        if span.start_index > last:
            parts.append(_esc(original[last:span.start_index]))
        covered = original[span.start_index:span.end_index]
        correction = span.correction_text

        if (covered + correction).isspace():
            parts.append(_esc(correction))
        elif annotated >= max_annotations:
            omitted += 1
            parts.append(_esc(correction))
        else:
            modifier = MODIFIER_DELETED if not correction else MODIFIER_REPLACED
            parts.append(build_annotation(
                modifier, covered, correction, span.type, span.explanation
            ))
            annotated += 1
        last = span.end_index

    if last < len(original):
        parts.append(_esc(original[last:]))
    if omitted:
        parts.append(build_more_indicator(omitted))

    return MarkupFragment(html="".join(parts), annotation_count=annotated, omitted_count=omitted)


def render(
    original: str,
    changes: Union[Sequence[EditOp], Sequence[CorrectionSpan]],
    corrections: Sequence[CorrectionSpan] = (),
    max_annotations: int = DEFAULT_MAX_ANNOTATIONS,
) -> MarkupFragment:
    """
    Render either an edit script or a span list.

    Args:
        original: Original text.
        changes: EditOps (diff path) or CorrectionSpans (span path).
        corrections: Metadata spans for the diff path.
        max_annotations: Annotation cap for this element.

    Returns:
        MarkupFragment.

    Raises:
        TypeError: If changes mixes or contains unsupported items.
    """
    items = list(changes)
    if not items:
        return MarkupFragment(html=_esc(original))
    if all(isinstance(item, EditOp) for item in items):
        return render_edit_ops(original, items, corrections, max_annotations)
    if all(isinstance(item, CorrectionSpan) for item in items):
        return render_spans(original, items, max_annotations)
    raise TypeError("changes must be all EditOp or all CorrectionSpan")
