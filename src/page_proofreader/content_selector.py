"""
Content selection for page proofreading.

Finds the text blocks on a page worth sending to the correction service
and returns them in visual reading order:
1. Discover content containers (semantic regions, CMS content classes)
2. Extract headings, paragraphs, quotes, captions, definitions, summaries
   and list items from each container, reprioritising paragraphs over
   headings in paragraph-heavy (blog-like) containers
3. Filter out navigation and other page chrome, hidden or tiny boxes,
   label-like text and long text without sentences
4. Deduplicate and sort by position, then priority, then document order
5. Cap the result

Selectors that cannot be evaluated are logged and skipped.
"""

import functools
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import Tag
from soupsieve import SelectorSyntaxError

from .config import ProofreaderConfig
from .errors import SelectorError
from .layout import LayoutProvider, StaticLayout
from .models import CandidateType, ContentCandidate, Position

logger = logging.getLogger(__name__)


# Primary content containers, most specific first
PRIMARY_CONTAINER_SELECTORS = [
    "main",
    "article",
    '[role="main"]',
    ".content",
    ".post-content",
    ".entry-content",
    ".article-content",
    '[class*="article"]',
    '[id*="content"]',
    ".mw-parser-output",  # Wikipedia
    ".post",
    ".entry",
]

# Fallback containers when a page has no semantic regions
SECONDARY_CONTAINER_SELECTORS = [
    ".container",
    ".wrapper",
    ".page",
    ".body",
    "body",
]

# Class/id words that mark page chrome rather than content
UI_KEYWORDS = [
    "nav", "navbar", "navigation", "menu", "header", "footer", "sidebar",
    "widget", "toolbar", "button", "btn", "link", "tab", "dropdown", "popup",
    "modal", "breadcrumb", "pagination", "search", "filter", "sort", "login",
    "signup", "subscribe", "share", "social", "ad", "ads", "advert", "advertisement",
    "banner", "promo", "cookie", "consent", "notice", "alert",
]

# Class/id words that mark article content
CONTENT_INDICATORS = [
    "mw-parser-output", "mw-content-text",  # Wikipedia
    "content", "article", "post", "entry", "text", "body",
    "description", "summary", "excerpt", "paragraph",
]

# Keywords at least this long match anywhere inside a class/id word
SUBSTRING_MATCH_MIN_LENGTH = 4

# Keywords this short match whole words only ("ad" is not "lead")
WHOLE_WORD_MAX_LENGTH = 2

SENTENCE_END_RE = re.compile(r"[.!?]+")
UPPERCASE_RE = re.compile(r"[A-Z]")
WORD_SPLIT_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class CategoryRule:
    """How one content category is extracted from a container."""
    type: CandidateType
    selector: str
    min_length: int
    priority: int


# Priorities for headings and paragraphs are swapped in paragraph-heavy containers
CATEGORY_RULES = [
    CategoryRule(CandidateType.HEADING, "h1, h2, h3, h4, h5, h6", 10, 1),
    CategoryRule(CandidateType.PARAGRAPH, "p", 50, 2),
    CategoryRule(CandidateType.QUOTE, "blockquote", 30, 3),
    CategoryRule(CandidateType.CAPTION, "figcaption, .caption", 20, 4),
    CategoryRule(CandidateType.DEFINITION, "dd", 30, 5),
    CategoryRule(CandidateType.SUMMARY, "summary", 20, 6),
    CategoryRule(CandidateType.LIST_ITEM, "li", 40, 7),
]


def _select(node: Tag, selector: str) -> list[Tag]:
    try:
        return node.select(selector)
    except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
        raise SelectorError(f"Selector {selector!r} failed: {e}") from e


def _class_string(element: Optional[Tag]) -> str:
    if element is None or not isinstance(element, Tag):
        return ""
    classes = element.get("class") or []
    if isinstance(classes, str):
        return classes.lower()
    return " ".join(classes).lower()


def _id_string(element: Optional[Tag]) -> str:
    if element is None or not isinstance(element, Tag):
        return ""
    return str(element.get("id") or "").lower()


def _matches_keyword(value: str, keyword: str) -> bool:
    """
    Check whether a class/id string carries a keyword.

    Long keywords match inside any word ("mainmenu"), short ones at either
    end of a word ("topnav", "adsbygoogle"), and the shortest only as a
    whole word.
    """
    if not value:
        return False
    if "-" in keyword:
        return keyword in value
    for word in WORD_SPLIT_RE.split(value):
        if not word:
            continue
        if word == keyword:
            return True
        if len(keyword) >= SUBSTRING_MATCH_MIN_LENGTH:
            if keyword in word:
                return True
        elif len(keyword) > WHOLE_WORD_MAX_LENGTH:
            if word.startswith(keyword) or word.endswith(keyword):
                return True
    return False


def _has_any(values: list[str], keywords: list[str]) -> bool:
    return any(_matches_keyword(v, kw) for v in values for kw in keywords)


@dataclass
class ContainerMatch:
    """A content container found during discovery."""
    element: Tag
    tier: int  # 1 = primary selector, 2 = secondary
    order: int


class ContentSelector:
    """
    Selects proofreadable elements from a parsed page.

    Args:
        config: Thresholds and caps.
        layout: Geometry/visibility provider. Defaults to StaticLayout.
    """

    def __init__(
        self,
        config: Optional[ProofreaderConfig] = None,
        layout: Optional[LayoutProvider] = None,
    ):
        self.config = config or ProofreaderConfig()
        self.layout = layout or StaticLayout()
        self._order: dict[int, int] = {}

    def select_candidates(self, root: Tag) -> list[ContentCandidate]:
        """
        Find candidates in reading order, capped at config.max_candidates.

        Args:
            root: Parsed document or subtree to search.

        Returns:
            Ordered ContentCandidates.
        """
        self._order = {id(tag): index for index, tag in enumerate(root.find_all(True))}

        containers = self.find_containers(root)
        found: list[ContentCandidate] = []
        for container in containers:
            found.extend(self.extract_from_container(container.element))

        unique = self.remove_duplicates(found)
        ordered = self.sort_by_reading_order(unique)
        selected = ordered[: self.config.max_candidates]

        logger.info(
            f"Selected {len(selected)} of {len(unique)} candidates "
            f"from {len(containers)} containers"
        )
        return selected

    def select_elements(self, root: Tag) -> list[Tag]:
        """Same as select_candidates, returning only the elements."""
        return [c.element for c in self.select_candidates(root)]

    # --- Stage 1: containers -------------------------------------------------

    def find_containers(self, root: Tag) -> list[ContainerMatch]:
        """Discover valid content containers, primary tier first."""
        containers: list[ContainerMatch] = []
        seen: set[int] = set()

        for tier, selectors in ((1, PRIMARY_CONTAINER_SELECTORS), (2, SECONDARY_CONTAINER_SELECTORS)):
            for selector in selectors:
                try:
                    matches = _select(root, selector)
                except SelectorError as e:
                    logger.warning(f"Skipping container selector: {e}")
                    continue
                for element in matches:
                    if id(element) in seen or not self.is_valid_container(element):
                        continue
                    seen.add(id(element))
                    containers.append(ContainerMatch(element, tier, self._order.get(id(element), 0)))

        containers.sort(key=lambda c: (c.tier, c.order))
        logger.debug(f"Found {len(containers)} content containers")
        return containers

    def is_valid_container(self, element: Tag) -> bool:
        """Check that a container is visible, large enough and has text."""
        if not element.find(True):
            return False
        if not self.layout.is_visible(element):
            return False
        box = self.layout.rect(element)
        if box.width < self.config.min_container_width or box.height < self.config.min_container_height:
            return False
        return len(element.get_text().strip()) >= self.config.min_container_text

    # --- Stage 2: extraction -------------------------------------------------

    def is_paragraph_heavy(self, container: Tag) -> bool:
        """
        Check if a container reads like a blog article.

        A container is paragraph-heavy when qualifying paragraphs make up at
        least 60% of its qualifying content elements, or when there are at
        least five of them and they make up more than 40%.
        """
        counts: dict[CandidateType, int] = {}
        for rule in CATEGORY_RULES:
            try:
                elements = _select(container, rule.selector)
            except SelectorError as e:
                logger.warning(f"Skipping category selector: {e}")
                continue
            counts[rule.type] = sum(
                1 for el in elements if len(el.get_text().strip()) >= rule.min_length
            )

        total = sum(counts.values())
        if total == 0:
            return False
        paragraphs = counts.get(CandidateType.PARAGRAPH, 0)
        ratio = paragraphs / total
        return ratio >= 0.6 or (paragraphs >= 5 and ratio > 0.4)

    def _priority_for(self, rule: CategoryRule, paragraph_heavy: bool) -> int:
        if paragraph_heavy and rule.type == CandidateType.HEADING:
            return 2
        if paragraph_heavy and rule.type == CandidateType.PARAGRAPH:
            return 1
        return rule.priority

    def extract_from_container(self, container: Tag) -> list[ContentCandidate]:
        """Extract qualifying elements from one container."""
        paragraph_heavy = self.is_paragraph_heavy(container)
        candidates: list[ContentCandidate] = []

        for rule in CATEGORY_RULES:
            try:
                elements = _select(container, rule.selector)
            except SelectorError as e:
                logger.warning(f"Skipping category selector: {e}")
                continue
            priority = self._priority_for(rule, paragraph_heavy)
            for element in elements:
                if not self.is_valid_content_element(element, rule.min_length):
                    continue
                box = self.layout.rect(element)
                candidates.append(ContentCandidate(
                    element=element,
                    priority=priority,
                    type=rule.type,
                    position=Position(box.top, box.left, box.bottom, box.right),
                    order=self._order.get(id(element), 0),
                ))
        return candidates

    # --- Stage 3: filtering --------------------------------------------------

    def has_content_indicator(self, element: Tag) -> bool:
        """Check the element and its ancestors for a content class/id."""
        node: Optional[Tag] = element
        while node is not None and isinstance(node, Tag) and node.name != "[document]":
            if _has_any([_class_string(node), _id_string(node)], CONTENT_INDICATORS):
                return True
            node = node.parent
        return False

    def is_valid_content_element(self, element: Tag, min_length: int) -> bool:
        """
        Decide whether an element is proofreadable content.

        Args:
            element: Element to check.
            min_length: Minimum trimmed text length for its category.

        Returns:
            True if the element should become a candidate.
        """
        cfg = self.config
        if not self.layout.is_visible(element):
            return False

        text = element.get_text().strip()
        has_indicator = self.has_content_indicator(element)
        required = min(min_length, cfg.indicator_min_length) if has_indicator else min_length
        if len(text) < required:
            return False

        chrome = [_class_string(element), _id_string(element), _class_string(element.parent)]
        if _has_any(chrome, UI_KEYWORDS):
            return False

        if len(element.find_all(True, recursive=False)) > cfg.max_child_elements:
            return False

        if len(text.split()) < cfg.min_words:
            return False

        if len(UPPERCASE_RE.findall(text)) / len(text) > cfg.max_uppercase_ratio:
            return False

        box = self.layout.rect(element)
        if box.width < cfg.min_element_size or box.height < cfg.min_element_size:
            return False
        if box.top < cfg.offscreen_limit or box.left < cfg.offscreen_limit:
            return False

        if has_indicator:
            return True

        if not SENTENCE_END_RE.search(text) and len(text) > cfg.sentence_check_length:
            return False
        return True

    # --- Stage 4: dedup and ordering -----------------------------------------

    @staticmethod
    def remove_duplicates(candidates: list[ContentCandidate]) -> list[ContentCandidate]:
        """Drop repeated elements, keeping the first occurrence."""
        seen: set[int] = set()
        unique = []
        for candidate in candidates:
            if id(candidate.element) in seen:
                continue
            seen.add(id(candidate.element))
            unique.append(candidate)
        return unique

    def sort_by_reading_order(self, candidates: list[ContentCandidate]) -> list[ContentCandidate]:
        """Sort top-to-bottom, left-to-right, then by priority and document order."""
        tolerance = self.config.row_tolerance

        def compare(a: ContentCandidate, b: ContentCandidate) -> int:
            dy = a.position.top - b.position.top
            if abs(dy) > tolerance:
                return -1 if dy < 0 else 1
            dx = a.position.left - b.position.left
            if abs(dx) > tolerance:
                return -1 if dx < 0 else 1
            if a.priority != b.priority:
                return a.priority - b.priority
            return a.order - b.order

        return sorted(candidates, key=functools.cmp_to_key(compare))


def select_candidates(
    root: Tag,
    config: Optional[ProofreaderConfig] = None,
    layout: Optional[LayoutProvider] = None,
) -> list[ContentCandidate]:
    """
    Convenience function for candidate selection.

    Args:
        root: Parsed document or subtree.
        config: Optional configuration.
        layout: Optional layout provider.

    Returns:
        Candidates in reading order.
    """
    return ContentSelector(config, layout).select_candidates(root)


def select_elements(
    root: Tag,
    config: Optional[ProofreaderConfig] = None,
    layout: Optional[LayoutProvider] = None,
) -> list[Tag]:
    """Convenience function returning the selected elements only."""
    return ContentSelector(config, layout).select_elements(root)
