"""
Page Proofreader

An AI proofreading overlay for web pages that:
- Selects the readable content blocks of a page in reading order
- Sends each block to a correction service (Anthropic Claude by default)
- Diffs the corrected text against the original at word level
- Annotates every correction inline, and restores the page on demand
"""

__version__ = "1.0.0"
__author__ = "Page Proofreader Team"

from .config import ProofreaderConfig

from .errors import (
    ProofreaderError,
    ConfigError,
    SelectorError,
    CorrectionServiceError,
    MalformedResponseError,
    RenderingError,
    ContentLoadError,
)

from .models import (
    Token,
    TokenKind,
    EditOp,
    EditOpKind,
    CorrectionSpan,
    CorrectionType,
    ProofreadResult,
    ContentCandidate,
    CandidateType,
    Position,
    AnnotationRecord,
    MarkupFragment,
    ElementOutcome,
    OutcomeStatus,
    RunSummary,
)

# Text diffing
from .tokenizer import tokenize, detokenize
from .aligner import align, align_text, replay_original, replay_corrected, summarize_ops
from .normalizer import normalize_corrections, validate_spans, apply_spans
from .text_repair import sanitize_corrected_text

# Page handling
from .layout import LayoutProvider, StaticLayout, Rect
from .content_selector import ContentSelector, select_candidates, select_elements
from .renderer import render, render_edit_ops, render_spans
from .ledger import AnnotationLedger
from .page_sources import load_html

# Services and run loop
from .correction_service import (
    CorrectionService,
    AnthropicCorrectionService,
    StaticCorrectionService,
    parse_service_payload,
    create_correction_service,
)
from .pipeline import ProofreadSession

__all__ = [
    # Configuration
    "ProofreaderConfig",
    # Errors
    "ProofreaderError",
    "ConfigError",
    "SelectorError",
    "CorrectionServiceError",
    "MalformedResponseError",
    "RenderingError",
    "ContentLoadError",
    # Models
    "Token",
    "TokenKind",
    "EditOp",
    "EditOpKind",
    "CorrectionSpan",
    "CorrectionType",
    "ProofreadResult",
    "ContentCandidate",
    "CandidateType",
    "Position",
    "AnnotationRecord",
    "MarkupFragment",
    "ElementOutcome",
    "OutcomeStatus",
    "RunSummary",
    # Text diffing
    "tokenize",
    "detokenize",
    "align",
    "align_text",
    "replay_original",
    "replay_corrected",
    "summarize_ops",
    "normalize_corrections",
    "validate_spans",
    "apply_spans",
    "sanitize_corrected_text",
    # Page handling
    "LayoutProvider",
    "StaticLayout",
    "Rect",
    "ContentSelector",
    "select_candidates",
    "select_elements",
    "render",
    "render_edit_ops",
    "render_spans",
    "AnnotationLedger",
    "load_html",
    # Services and run loop
    "CorrectionService",
    "AnthropicCorrectionService",
    "StaticCorrectionService",
    "parse_service_payload",
    "create_correction_service",
    "ProofreadSession",
]
