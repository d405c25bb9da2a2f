"""
Data models for the page proofreader.

This module defines the core data structures passed between the tokenizer,
aligner, normalizer, content selector, renderer and mutation ledger.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from bs4 import Tag


class TokenKind(Enum):
    """Kind of an atomic diff unit."""
    WORD = "word"
    PUNCTUATION = "punctuation"
    WHITESPACE = "whitespace"


@dataclass(frozen=True)
class Token:
    """A word, punctuation run, or whitespace run."""
    kind: TokenKind
    text: str

    @property
    def is_whitespace(self) -> bool:
        return self.kind == TokenKind.WHITESPACE


class EditOpKind(Enum):
    """Kind of an edit operation in an alignment."""
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


@dataclass
class EditOp:
    """
    A coalesced run of same-kind tokens in an edit script.

    ``original`` is set for equal/delete/replace, ``corrected`` for
    equal/insert/replace.
    """
    kind: EditOpKind
    original: Optional[str] = None
    corrected: Optional[str] = None

    @property
    def original_text(self) -> str:
        """Text this op consumes from the original side."""
        return self.original or ""

    @property
    def corrected_text(self) -> str:
        """Text this op contributes to the corrected side."""
        return self.corrected or ""

    @property
    def is_change(self) -> bool:
        return self.kind != EditOpKind.EQUAL

    @property
    def is_whitespace_only(self) -> bool:
        """True when every character this op touches, on either side, is whitespace."""
        touched = self.original_text + self.corrected_text
        return bool(touched) and touched.isspace()


class CorrectionType(Enum):
    """Category of a correction reported by the service."""
    SPELLING = "spelling"
    GRAMMAR = "grammar"
    PUNCTUATION = "punctuation"
    CAPITALIZATION = "capitalization"
    PREPOSITION = "preposition"
    MISSING_WORDS = "missing-words"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "CorrectionType":
        """Map a service-supplied type string to a CorrectionType.

        Unknown or missing values fall back to OTHER. Underscores and case
        differences are tolerated ("missing_words", "Spelling").
        """
        if isinstance(value, CorrectionType):
            return value
        if not value or not isinstance(value, str):
            return cls.OTHER
        normalized = value.strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if member.value == normalized:
                return member
        return cls.OTHER


@dataclass
class CorrectionSpan:
    """A service-reported correction over a range of the original text."""
    start_index: int
    end_index: int
    correction_text: str
    type: CorrectionType = CorrectionType.OTHER
    explanation: Optional[str] = None

    def overlaps(self, start: int, end: int) -> bool:
        """Check whether this span shares any character with [start, end)."""
        return not (self.end_index <= start or self.start_index >= end)

    def copy(self) -> "CorrectionSpan":
        return CorrectionSpan(
            start_index=self.start_index,
            end_index=self.end_index,
            correction_text=self.correction_text,
            type=self.type,
            explanation=self.explanation,
        )


@dataclass
class ProofreadResult:
    """Parsed response from a correction service."""
    corrected_text: Optional[str] = None
    corrections: list[CorrectionSpan] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.corrected_text is None and not self.corrections


class CandidateType(Enum):
    """Content category of a candidate element."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    QUOTE = "quote"
    CAPTION = "caption"
    DEFINITION = "definition"
    SUMMARY = "summary"
    LIST_ITEM = "list-item"


@dataclass(frozen=True)
class Position:
    """Page coordinates of an element's box."""
    top: float
    left: float
    bottom: float
    right: float


@dataclass
class ContentCandidate:
    """An element selected as eligible for proofreading."""
    element: Tag
    priority: int
    type: CandidateType
    position: Position
    order: int = 0  # Document order, final sort tie-break

    @property
    def text(self) -> str:
        return self.element.get_text()


@dataclass
class AnnotationRecord:
    """Snapshot of an element taken before its first mutation."""
    element: Tag
    original_html: str
    original_text: str
    original_nodes: list = field(default_factory=list, repr=False)


@dataclass
class MarkupFragment:
    """Rendered inline markup for one element."""
    html: str
    annotation_count: int = 0
    omitted_count: int = 0  # Changes past the annotation cap


class OutcomeStatus(Enum):
    """Result of processing one candidate."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ElementOutcome:
    """What happened to one candidate during a run."""
    candidate: ContentCandidate
    index: int
    status: OutcomeStatus
    annotations: int = 0
    used_fallback: bool = False
    error: Optional[str] = None


@dataclass
class RunSummary:
    """Counts reported at the end of a proofreading run."""
    candidates: int = 0
    processed: int = 0  # changed + unchanged + failed
    changed: int = 0
    unchanged: int = 0
    failed: int = 0
    cancelled: bool = False
    outcomes: list[ElementOutcome] = field(default_factory=list, repr=False)

    def as_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "processed": self.processed,
            "changed": self.changed,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "cancelled": self.cancelled,
        }
