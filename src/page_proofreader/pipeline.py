"""
Proofreading run loop.

A ProofreadSession ties the pieces together for one page:
1. Select candidate elements (content_selector)
2. For each candidate, in reading order and one at a time:
   - scroll it into view and mark it as being processed
   - send its raw text to the correction service
   - diff the corrected text against the original (aligner), or fall back
     to the service's correction spans (normalizer)
   - render annotation markup (renderer) and apply it (ledger)
3. Report a RunSummary

The run can be cancelled cooperatively with stop(); annotations already
applied stay in place until restore_all().
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from bs4 import Tag

from .aligner import align_text
from .config import ProofreaderConfig
from .content_selector import ContentSelector
from .correction_service import CorrectionService
from .errors import CorrectionServiceError, ProofreaderError, RenderingError
from .layout import LayoutProvider, StaticLayout
from .ledger import AnnotationLedger, add_class, remove_class
from .models import (
    ContentCandidate,
    CorrectionSpan,
    ElementOutcome,
    MarkupFragment,
    OutcomeStatus,
    ProofreadResult,
    RunSummary,
)
from .normalizer import normalize_corrections, validate_spans
from .renderer import ANNOTATION_CLASS, render_edit_ops, render_spans
from .text_repair import sanitize_corrected_text

logger = logging.getLogger(__name__)

PROCESSING_CLASS = "proofread-processing"

Callback = Optional[Callable[..., Any]]


async def _notify(callback: Callback, *args) -> None:
    """Invoke a host callback, awaiting it when it is a coroutine function."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _is_attached(element: Tag, root: Tag) -> bool:
    node = element
    while node is not None:
        if node is root:
            return True
        node = node.parent
    return False


def _in_bounds(spans: list[CorrectionSpan], text: str) -> list[CorrectionSpan]:
    return [
        span for span in spans
        if 0 <= span.start_index < span.end_index <= len(text)
    ]


class ProofreadSession:
    """
    One proofreading session over a parsed page.

    Args:
        service: Correction service to call for each element.
        config: Thresholds, caps and pacing. Defaults to ProofreaderConfig().
        layout: Geometry provider. Defaults to StaticLayout().
        ledger: Mutation ledger. A new one is created when omitted.
    """

    def __init__(
        self,
        service: CorrectionService,
        config: Optional[ProofreaderConfig] = None,
        layout: Optional[LayoutProvider] = None,
        ledger: Optional[AnnotationLedger] = None,
    ):
        self.service = service
        self.config = config or ProofreaderConfig()
        self.layout = layout or StaticLayout()
        self.ledger = ledger or AnnotationLedger()
        self.selector = ContentSelector(self.config, self.layout)
        self.is_active = False
        self.should_stop = False
        self._root: Optional[Tag] = None

    def stop(self) -> None:
        """Request cancellation of the current run."""
        if self.is_active:
            logger.info("Stop requested")
            self.should_stop = True

    def restore_all(self) -> int:
        """
        Undo every annotation applied by this session.

        Returns:
            Number of elements restored.
        """
        restored = self.ledger.restore_all(document=self._root)
        if self._root is not None:
            for element in self._root.select(f".{PROCESSING_CLASS}"):
                remove_class(element, PROCESSING_CLASS)
        return restored

    async def run(
        self,
        root: Tag,
        on_element_start: Callback = None,
        on_element_done: Callback = None,
        on_progress: Callback = None,
    ) -> RunSummary:
        """
        Proofread the page under root.

        Args:
            root: Document or element to proofread.
            on_element_start: Called with (candidate, index) before the
                service call for an element.
            on_element_done: Called with the element's ElementOutcome.
            on_progress: Called with (processed, total) after each element.

        Returns:
            RunSummary with per-element outcomes.

        Raises:
            ProofreaderError: If a run is already active on this session.
        """
        if self.is_active:
            raise ProofreaderError("A proofreading run is already active")

        self.is_active = True
        self.should_stop = False
        self._root = root
        summary = RunSummary()

        try:
            candidates = self.selector.select_candidates(root)
            summary.candidates = len(candidates)
            total = min(len(candidates), self.config.max_processed)
            if not candidates:
                logger.info("No content found to proofread")
                return summary

            for index, candidate in enumerate(candidates):
                if self.should_stop:
                    summary.cancelled = True
                    break
                if summary.processed >= self.config.max_processed:
                    logger.info(f"Reached processing cap of {self.config.max_processed} elements")
                    break

                skip_reason = self._skip_reason(candidate, root)
                if skip_reason:
                    logger.debug(f"Skipping candidate {index} <{candidate.element.name}>: {skip_reason}")
                    summary.outcomes.append(ElementOutcome(
                        candidate=candidate,
                        index=index,
                        status=OutcomeStatus.SKIPPED,
                        error=skip_reason,
                    ))
                    continue

                await _notify(on_element_start, candidate, index)

                outcome = await self._process(candidate, index)
                if outcome is None:
                    # Interrupted elements are not counted as processed
                    summary.cancelled = True
                    break

                summary.processed += 1
                summary.outcomes.append(outcome)
                if outcome.status == OutcomeStatus.CHANGED:
                    summary.changed += 1
                elif outcome.status == OutcomeStatus.UNCHANGED:
                    summary.unchanged += 1
                elif outcome.status == OutcomeStatus.FAILED:
                    summary.failed += 1

                await _notify(on_element_done, outcome)
                await _notify(on_progress, summary.processed, total)

                if self.config.element_pause > 0 and index < len(candidates) - 1:
                    await asyncio.sleep(self.config.element_pause)

            logger.info(
                f"Proofreading {'cancelled' if summary.cancelled else 'complete'}: "
                f"{summary.processed} processed, {summary.changed} changed, "
                f"{summary.unchanged} unchanged, {summary.failed} failed "
                f"(of {summary.candidates} candidates)"
            )
            return summary
        finally:
            self.is_active = False

    def _skip_reason(self, candidate: ContentCandidate, root: Tag) -> Optional[str]:
        element = candidate.element
        if not _is_attached(element, root):
            return "no longer attached to the page"
        if not self.ledger.is_tracked(element) and element.select_one(f".{ANNOTATION_CLASS}"):
            return "contains annotations of another element"
        text = self.ledger.source_text(element)
        if len(text.strip()) < self.config.min_process_chars:
            return "too little text"
        return None

    async def _process(self, candidate: ContentCandidate, index: int) -> Optional[ElementOutcome]:
        """Process one element. Returns None when the run was cancelled mid-element."""
        element = candidate.element
        text = self.ledger.source_text(element)

        add_class(element, PROCESSING_CLASS)
        try:
            await self.layout.scroll_into_view(element)
            if self.config.scroll_settle_delay > 0:
                await asyncio.sleep(self.config.scroll_settle_delay)
            if self.should_stop:
                return None

            try:
                result = await self.service.proofread(text)
            except CorrectionServiceError as e:
                logger.warning(f"Proofreading failed for element {index} <{element.name}>: {e}")
                return ElementOutcome(candidate, index, OutcomeStatus.FAILED, error=str(e))
            except Exception as e:
                logger.error(f"Unexpected service error for element {index} <{element.name}>: {e}")
                return ElementOutcome(candidate, index, OutcomeStatus.FAILED, error=str(e))

            if self.should_stop:
                return None

            try:
                return self._apply_result(candidate, index, text, result)
            except CorrectionServiceError as e:
                logger.warning(f"Unusable corrections for element {index} <{element.name}>: {e}")
                return ElementOutcome(candidate, index, OutcomeStatus.FAILED, error=str(e))
        finally:
            remove_class(element, PROCESSING_CLASS)

    def _apply_result(
        self,
        candidate: ContentCandidate,
        index: int,
        text: str,
        result: ProofreadResult,
    ) -> ElementOutcome:
        """Render a service result and apply it to the candidate's element."""
        if result.corrected_text is not None:
            corrected = result.corrected_text
            if self.config.sanitize_output:
                corrected = sanitize_corrected_text(corrected)
            ops = align_text(text, corrected)
            if not any(op.is_change and not op.is_whitespace_only for op in ops):
                return ElementOutcome(candidate, index, OutcomeStatus.UNCHANGED)
            metadata = normalize_corrections(_in_bounds(result.corrections, text))
            markup = render_edit_ops(text, ops, metadata, self.config.max_annotations)
            fallback_spans = [CorrectionSpan(0, len(text), corrected)]
        elif result.corrections:
            spans = [
                span for span in validate_spans(result.corrections, text)
                if text[span.start_index:span.end_index] != span.correction_text
            ]
            if not spans:
                return ElementOutcome(candidate, index, OutcomeStatus.UNCHANGED)
            spans = normalize_corrections(spans)
            markup = render_spans(text, spans, self.config.max_annotations)
            fallback_spans = spans
        else:
            return ElementOutcome(candidate, index, OutcomeStatus.UNCHANGED)

        return self._apply_markup(candidate, index, text, markup, fallback_spans)

    def _apply_markup(
        self,
        candidate: ContentCandidate,
        index: int,
        text: str,
        markup: MarkupFragment,
        fallback_spans: list[CorrectionSpan],
    ) -> ElementOutcome:
        element = candidate.element
        try:
            self.ledger.apply(element, markup)
        except RenderingError as e:
            logger.warning(f"Falling back to plain text for element {index} <{element.name}>: {e}")
            self.ledger.apply_plain_text(element, text, fallback_spans)
            return ElementOutcome(candidate, index, OutcomeStatus.CHANGED, used_fallback=True)

        logger.debug(
            f"Annotated element {index} <{element.name}> with "
            f"{markup.annotation_count} corrections ({markup.omitted_count} over cap)"
        )
        return ElementOutcome(
            candidate,
            index,
            OutcomeStatus.CHANGED,
            annotations=markup.annotation_count,
        )
