"""
DOM mutation and restoration ledger.

Applies rendered annotation markup to elements of a parsed page and keeps
enough of each element's original state to undo it:
- The first mutation of an element snapshots its HTML, its text and its
  original child nodes; later mutations never overwrite that snapshot
- restore_all() puts every still-attached element back exactly as it was,
  then unwraps any annotation spans left in the document by other code
  paths, merging the freed text back into its neighbours
- restore_all() is idempotent
"""

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag

from .errors import RenderingError
from .models import AnnotationRecord, CorrectionSpan, MarkupFragment
from .normalizer import apply_spans
from .renderer import ANNOTATION_CLASS, MORE_CHANGES_CLASS

logger = logging.getLogger(__name__)

CORRECTED_CLASS = "proofread-corrected"
STRAY_SELECTOR = f".{ANNOTATION_CLASS}, .{MORE_CHANGES_CLASS}"


def _document_of(element: Tag) -> Optional[BeautifulSoup]:
    """Return the document an element is attached to, if any."""
    node = element
    while node.parent is not None:
        node = node.parent
    return node if isinstance(node, BeautifulSoup) else None


def remove_class(element: Tag, name: str) -> None:
    classes = element.get("class")
    if not classes:
        return
    remaining = [c for c in classes if c != name]
    if remaining:
        element["class"] = remaining
    else:
        del element["class"]


def add_class(element: Tag, name: str) -> None:
    classes = list(element.get("class") or [])
    if name not in classes:
        classes.append(name)
    element["class"] = classes


def parse_fragment(markup: str) -> list:
    """
    Parse an HTML fragment into detached nodes.

    Raises:
        RenderingError: If the fragment cannot be parsed.
    """
    if not isinstance(markup, str):
        raise RenderingError(f"Markup must be a string, got {type(markup).__name__}")
    try:
        fragment = BeautifulSoup(markup, "html.parser")
    except Exception as e:
        raise RenderingError(f"Could not parse annotation markup: {e}") from e
    return [node.extract() for node in list(fragment.contents)]


class AnnotationLedger:
    """
    Tracks mutated elements and their original content.

    Args:
        document: Optional document to sweep for stray annotations on
            restore. Documents of tracked elements are always swept.
    """

    def __init__(self, document: Optional[BeautifulSoup] = None):
        self.document = document
        self._records: dict[int, AnnotationRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def is_tracked(self, element: Tag) -> bool:
        return id(element) in self._records

    def record_for(self, element: Tag) -> Optional[AnnotationRecord]:
        return self._records.get(id(element))

    def source_text(self, element: Tag) -> str:
        """Text to proofread for an element: its original text if already annotated."""
        record = self.record_for(element)
        return record.original_text if record else element.get_text()

    def _snapshot(self, element: Tag) -> AnnotationRecord:
        record = self._records.get(id(element))
        if record is not None:
            return record
        record = AnnotationRecord(
            element=element,
            original_html=element.decode_contents(),
            original_text=element.get_text(),
            original_nodes=[child.extract() for child in list(element.contents)],
        )
        self._records[id(element)] = record
        return record

    def _replace_children(self, element: Tag, nodes: list) -> None:
        if self.is_tracked(element):
            # Current children are ours; the originals are held by the record
            for child in list(element.contents):
                child.extract()
        for node in nodes:
            element.append(node)

    def apply(self, element: Tag, markup: Union[MarkupFragment, str]) -> AnnotationRecord:
        """
        Replace an element's content with annotation markup.

        Args:
            element: Element to mutate.
            markup: Rendered fragment or raw HTML string.

        Returns:
            The element's (possibly pre-existing) snapshot record.

        Raises:
            RenderingError: If the markup cannot be parsed. The element is
                left unmodified in that case.
        """
        html_text = markup.html if isinstance(markup, MarkupFragment) else markup
        nodes = parse_fragment(html_text)
        record = self._snapshot(element)
        self._replace_children(element, nodes)
        return record

    def apply_plain_text(
        self,
        element: Tag,
        original_text: str,
        corrections: list[CorrectionSpan],
    ) -> AnnotationRecord:
        """
        Fallback: splice corrections into the text and set it as plain text.

        Args:
            element: Element to mutate.
            original_text: Text the corrections index into.
            corrections: Correction spans (normalized before splicing).

        Returns:
            The element's snapshot record.
        """
        corrected = apply_spans(original_text, corrections)
        record = self._snapshot(element)
        self._replace_children(element, [NavigableString(corrected)])
        add_class(element, CORRECTED_CLASS)
        return record

    def restore_all(self, document: Optional[BeautifulSoup] = None) -> int:
        """
        Restore every tracked element and unwrap stray annotations.

        Elements are restored newest first so that an element annotated
        inside another annotated element is reattached before its own
        restore. Elements no longer attached to a document are skipped.

        Args:
            document: Extra document to sweep for stray annotations.

        Returns:
            Number of elements restored from snapshots.
        """
        documents: list[BeautifulSoup] = []
        for doc in (document, self.document):
            if doc is not None and all(doc is not d for d in documents):
                documents.append(doc)

        restored = 0
        for record in reversed(list(self._records.values())):
            element = record.element
            doc = _document_of(element)
            if doc is None:
                logger.debug(f"Skipping restore of detached <{element.name}>")
                continue
            if all(doc is not d for d in documents):
                documents.append(doc)
            for child in list(element.contents):
                child.extract()
            for node in record.original_nodes:
                element.append(node)
            remove_class(element, CORRECTED_CLASS)
            record.original_nodes = []
            restored += 1
        self._records.clear()

        stray = 0
        for doc in documents:
            stray += self._unwrap_stray(doc)

        if restored or stray:
            logger.info(f"Restored {restored} elements, unwrapped {stray} stray annotations")
        return restored

    @staticmethod
    def _unwrap_stray(document: BeautifulSoup) -> int:
        count = 0
        for span in document.select(STRAY_SELECTOR):
            parent = span.parent
            if parent is None:
                continue
            original = span.get("data-original")
            text = original if original is not None else span.get_text()
            span.replace_with(NavigableString(text))
            parent.smooth()
            count += 1
        return count
