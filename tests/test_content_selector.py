"""
Tests for content selection.

Key guarantees tested:
1. Navigation, footer and other chrome is never selected
2. Results come back in reading order and are capped
3. Paragraph-heavy containers promote paragraphs over headings
4. Hidden, tiny and label-like elements are filtered out
5. A failing selector is skipped without aborting selection
"""

import logging
from unittest.mock import patch

import pytest
from bs4 import BeautifulSoup

from page_proofreader.config import ProofreaderConfig
from page_proofreader.content_selector import (
    ContentSelector,
    _matches_keyword,
    select_candidates,
    select_elements,
)
from page_proofreader.errors import SelectorError
from page_proofreader.layout import StaticLayout
from page_proofreader.models import CandidateType, ContentCandidate, Position


def _parse(body: str) -> BeautifulSoup:
    return BeautifulSoup(f"<html><body>{body}</body></html>", "lxml")


SENTENCE = "This sentence is long enough to be proofread by the service today."


class TestSelectCandidates:
    """End-to-end selection on sample pages."""

    def test_article_elements_in_reading_order(self, sample_document):
        """Headings, paragraphs, quotes and list items come back top to bottom."""
        candidates = select_candidates(sample_document)

        assert [c.type for c in candidates] == [
            CandidateType.HEADING,
            CandidateType.PARAGRAPH,
            CandidateType.PARAGRAPH,
            CandidateType.QUOTE,
            CandidateType.LIST_ITEM,
        ]

    def test_navigation_menu_excluded(self, sample_document):
        """Items whose parent has a nav-menu class are never selected."""
        elements = select_elements(sample_document)

        for element in elements:
            parent_classes = element.parent.get("class") or []
            assert "nav-menu" not in parent_classes

    def test_footer_excluded(self, sample_document):
        """Paragraphs inside a site footer are never selected."""
        texts = [el.get_text() for el in select_elements(sample_document)]

        assert not any("Copyright" in text for text in texts)

    def test_cap_keeps_first_in_reading_order(self, long_article_document):
        """200 qualifying paragraphs are capped to the first 20."""
        candidates = select_candidates(long_article_document)

        assert len(candidates) == 20
        assert [int(c.element["data-index"]) for c in candidates] == list(range(20))

    def test_custom_cap(self, long_article_document):
        """max_candidates is honoured."""
        config = ProofreaderConfig(max_candidates=5)

        assert len(select_candidates(long_article_document, config=config)) == 5

    def test_no_duplicates_across_nested_containers(self, sample_document):
        """Elements found via main, article and body appear once."""
        elements = select_elements(sample_document)

        assert len({id(el) for el in elements}) == len(elements)

    def test_empty_page(self):
        """A page without content yields no candidates."""
        assert select_candidates(_parse("")) == []


class TestParagraphHeavy:
    """Tests for blog-style reprioritisation."""

    def test_paragraphs_outrank_headings(self, blog_document):
        """In a paragraph-heavy post paragraphs get priority 1."""
        candidates = select_candidates(blog_document)

        headings = [c for c in candidates if c.type == CandidateType.HEADING]
        paragraphs = [c for c in candidates if c.type == CandidateType.PARAGRAPH]
        assert headings and paragraphs
        assert all(c.priority == 2 for c in headings)
        assert all(c.priority == 1 for c in paragraphs)

    def test_mixed_page_keeps_default_priorities(self, sample_document):
        """Headings keep priority 1 when paragraphs do not dominate."""
        candidates = select_candidates(sample_document)

        heading = next(c for c in candidates if c.type == CandidateType.HEADING)
        paragraph = next(c for c in candidates if c.type == CandidateType.PARAGRAPH)
        assert heading.priority == 1
        assert paragraph.priority == 2

    def test_ratio_threshold(self, blog_document):
        """Six paragraphs and one heading is paragraph-heavy."""
        selector = ContentSelector()
        article = blog_document.find("article")

        assert selector.is_paragraph_heavy(article)


class TestElementFilters:
    """Tests for is_valid_content_element."""

    @pytest.fixture
    def selector(self) -> ContentSelector:
        return ContentSelector(ProofreaderConfig(), StaticLayout())

    def test_accepts_plain_sentence(self, selector):
        """A visible paragraph with a sentence is accepted."""
        doc = _parse(f"<main><p>{SENTENCE}</p></main>")

        assert selector.is_valid_content_element(doc.p, 50)

    def test_hidden_by_inline_style(self, selector):
        """display:none on the element hides it."""
        doc = _parse(f'<main><p style="display: none">{SENTENCE}</p></main>')

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_hidden_by_ancestor(self, selector):
        """A hidden ancestor hides the element."""
        doc = _parse(f'<main><div hidden><p>{SENTENCE}</p></div></main>')

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_too_short(self, selector):
        """Text under the category minimum is rejected."""
        doc = _parse("<main><p>Too short to check.</p></main>")

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_content_indicator_lowers_minimum(self, selector):
        """Inside a content class the minimum drops to 30 characters."""
        text = "A shorter sentence that still counts."
        plain = _parse(f"<main><p>{text}</p></main>")
        indicated = _parse(f'<div class="entry-content"><p>{text}</p></div>')

        assert not selector.is_valid_content_element(plain.p, 50)
        assert selector.is_valid_content_element(indicated.p, 50)

    def test_ui_keyword_on_element(self, selector):
        """Chrome classes on the element reject it."""
        doc = _parse(f'<main><p class="cookie-notice">{SENTENCE}</p></main>')

        assert not selector.is_valid_content_element(doc.p, 50)

    @pytest.mark.parametrize("css_class", [
        "adsbygoogle", "mainmenu", "topnav", "advert", "site-mainnav",
    ])
    def test_compound_chrome_classes_rejected(self, selector, css_class):
        """Chrome keywords fused into longer class names still reject."""
        doc = _parse(f'<main><p class="{css_class}">{SENTENCE}</p></main>')

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_short_keyword_needs_whole_word(self, selector):
        """'ad' does not match inside 'lead'."""
        doc = _parse(f'<main><p class="lead">{SENTENCE}</p></main>')

        assert selector.is_valid_content_element(doc.p, 50)

    def test_too_many_children(self, selector):
        """Wrappers with more than three child elements are rejected."""
        spans = "".join(f"<span>part {i} of the text</span> " for i in range(4))
        doc = _parse(f"<main><p>{spans} and a little more prose here.</p></main>")

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_mostly_uppercase(self, selector):
        """Shouting labels are rejected."""
        doc = _parse("<main><h2>ALL CAPS SECTION LABEL HERE</h2></main>")

        assert not selector.is_valid_content_element(doc.h2, 10)

    def test_long_text_without_sentence_end(self, selector):
        """Long text with no sentence punctuation is rejected."""
        words = " ".join(["word"] * 30)
        doc = _parse(f"<main><p>{words}</p></main>")

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_offscreen(self, selector):
        """Elements positioned far off-screen are rejected."""
        doc = _parse(f'<main><p data-rect="-5000,0,600,40">{SENTENCE}</p></main>')

        assert not selector.is_valid_content_element(doc.p, 50)

    def test_tiny_box(self, selector):
        """Boxes under 10px in either dimension are rejected."""
        doc = _parse(f'<main><p data-rect="100,0,600,4">{SENTENCE}</p></main>')

        assert not selector.is_valid_content_element(doc.p, 50)


class TestKeywordMatching:
    """Tests for class/id keyword matching."""

    @pytest.mark.parametrize("value,keyword,expected", [
        ("nav-menu", "nav", True),
        ("main-navigation", "navigation", True),
        ("site-footer", "footer", True),
        ("lead", "ad", False),
        ("notable", "tab", False),
        ("topnav", "nav", True),
        ("adsbygoogle", "ads", True),
        ("mainmenu", "menu", True),
        ("canvas", "nav", False),
        ("address", "ad", False),
        ("sidebar-left", "sidebar", True),
        ("buttons", "button", True),
        ("mw-parser-output", "mw-parser-output", True),
        ("", "nav", False),
    ])
    def test_matches(self, value, keyword, expected):
        assert _matches_keyword(value, keyword) is expected


class TestReadingOrder:
    """Tests for sort_by_reading_order."""

    def _candidate(self, doc, top, left, priority, order):
        return ContentCandidate(
            element=doc.new_tag("p"),
            priority=priority,
            type=CandidateType.PARAGRAPH,
            position=Position(top, left, top + 20, left + 100),
            order=order,
        )

    def test_rows_then_columns_then_priority(self):
        """Top wins, then left, then priority, then document order."""
        doc = _parse("")
        selector = ContentSelector()
        below = self._candidate(doc, 100, 0, 1, 0)
        right = self._candidate(doc, 10, 300, 1, 1)
        left_low_priority = self._candidate(doc, 12, 0, 2, 2)
        left_high_priority = self._candidate(doc, 10, 2, 1, 3)

        ordered = selector.sort_by_reading_order([below, right, left_low_priority, left_high_priority])

        assert ordered == [left_high_priority, left_low_priority, right, below]

    def test_explicit_geometry_overrides_document_order(self):
        """data-rect positions decide the order, not markup order."""
        doc = _parse(
            f'<main data-rect="0,0,1200,800">'
            f'<p data-rect="400,0,600,40" id="low">{SENTENCE}</p>'
            f'<p data-rect="100,0,600,40" id="high">{SENTENCE}</p>'
            f"</main>"
        )

        elements = select_elements(doc)

        assert [el["id"] for el in elements] == ["high", "low"]


class TestSelectorRobustness:
    """A failing selector must not abort selection."""

    def test_bad_selector_is_skipped(self, sample_document, caplog):
        """A broken container selector is logged and the rest still run."""
        with patch(
            "page_proofreader.content_selector.PRIMARY_CONTAINER_SELECTORS",
            ["main[", "main"],
        ):
            with caplog.at_level(logging.WARNING):
                candidates = select_candidates(sample_document)

        assert len(candidates) == 5
        assert "Skipping container selector" in caplog.text

    def test_selector_error_type(self, sample_document):
        """Invalid CSS is reported as SelectorError."""
        from page_proofreader.content_selector import _select

        with pytest.raises(SelectorError):
            _select(sample_document, "p[")
