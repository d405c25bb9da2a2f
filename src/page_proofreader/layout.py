"""
Geometry and visibility for parsed HTML documents.

A parsed document has no rendering engine behind it, so boxes and computed
visibility come from a LayoutProvider. StaticLayout derives them from what
the markup itself says:
- ``data-rect="top,left,width,height"`` attributes, as written by a browser
  snapshot exporter, are used verbatim
- inline ``style`` declarations supply display/visibility/opacity and any
  absolute ``top``/``left``/``width``/``height`` given in px
- everything else is estimated by flowing block elements down the page in
  document order at full viewport width
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Tags whose boxes start on a new line in normal flow
BLOCK_TAGS = {
    "address", "article", "aside", "blockquote", "body", "dd", "details",
    "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
    "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "main", "nav",
    "ol", "p", "pre", "section", "summary", "table", "tr", "ul",
}

# Tags never rendered as page content
NON_RENDERED_TAGS = {"head", "script", "style", "noscript", "template", "meta", "link", "title"}

PX_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*(?:px)?\s*$")


@dataclass(frozen=True)
class Rect:
    """An element's box in page coordinates."""
    top: float
    left: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width


def parse_inline_style(style: Optional[str]) -> dict[str, str]:
    """
    Parse an inline ``style`` attribute into a property map.

    Args:
        style: Raw attribute value, e.g. "display: none; color: red".

    Returns:
        Lowercased property names mapped to stripped, lowercased values.
    """
    declarations: dict[str, str] = {}
    if not style:
        return declarations
    for part in style.split(";"):
        if ":" not in part:
            continue
        name, value = part.split(":", 1)
        value = value.replace("!important", "").strip().lower()
        if name.strip():
            declarations[name.strip().lower()] = value
    return declarations


def _px(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    match = PX_RE.match(value)
    return float(match.group(1)) if match else None


class LayoutProvider:
    """
    Interface the content selector and run loop use for geometry.

    Implementations may be backed by a real browser (via a driver) or by
    static estimation.
    """

    def rect(self, element: Tag) -> Rect:
        raise NotImplementedError

    def is_visible(self, element: Tag) -> bool:
        raise NotImplementedError

    def in_viewport(self, element: Tag) -> bool:
        return True

    async def scroll_into_view(self, element: Tag) -> None:
        return None


class StaticLayout(LayoutProvider):
    """
    Layout estimated from the markup of a parsed document.

    Args:
        viewport_width: Width (px) given to block elements without an
            explicit width.
        viewport_height: Height (px) of the scrolled viewport.
        line_height: Height (px) of one estimated line of text.
        chars_per_line: Characters that fit on one estimated line.
    """

    def __init__(
        self,
        viewport_width: int = 1280,
        viewport_height: int = 800,
        line_height: int = 24,
        chars_per_line: int = 80,
    ):
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.line_height = line_height
        self.chars_per_line = chars_per_line
        self.scroll_y = 0.0
        self._order: dict[int, int] = {}
        self._indexed_root: Optional[Tag] = None

    def _document_of(self, element: Tag) -> Tag:
        root = element
        while root.parent is not None:
            root = root.parent
        return root

    def _order_of(self, element: Tag) -> int:
        root = self._document_of(element)
        if root is not self._indexed_root or id(element) not in self._order:
            self._indexed_root = root
            self._order = {
                id(tag): index
                for index, tag in enumerate(root.find_all(True))
            }
        return self._order.get(id(element), 0)

    def _estimated_height(self, element: Tag) -> float:
        text = element.get_text(" ", strip=True)
        lines = math.ceil(len(text) / self.chars_per_line) if text else 0
        blocks = sum(1 for tag in element.find_all(True) if tag.name in BLOCK_TAGS)
        return float(self.line_height * max(1, lines + blocks))

    def rect(self, element: Tag) -> Rect:
        """
        Get the box of an element.

        Args:
            element: Element to measure.

        Returns:
            Explicit geometry when the markup provides it, else a flow estimate.
        """
        explicit = element.get("data-rect")
        if explicit:
            try:
                top, left, width, height = (float(v) for v in str(explicit).split(","))
                return Rect(top, left, width, height)
            except ValueError:
                logger.debug(f"Ignoring malformed data-rect {explicit!r} on <{element.name}>")

        style = parse_inline_style(element.get("style"))
        width = _px(style.get("width"))
        height = _px(style.get("height"))
        top = left = None
        if style.get("position") in ("absolute", "fixed"):
            top = _px(style.get("top"))
            left = _px(style.get("left"))

        if top is None:
            top = float(self._order_of(element) * self.line_height)
        if left is None:
            left = 0.0
        if width is None:
            width = float(self.viewport_width) if element.name in BLOCK_TAGS else float(
                len(element.get_text()) * 8
            )
        if height is None:
            height = self._estimated_height(element)
        return Rect(top, left, width, height)

    def _hides(self, element: Tag) -> bool:
        if element.name in NON_RENDERED_TAGS or element.has_attr("hidden"):
            return True
        style = parse_inline_style(element.get("style"))
        if style.get("display") == "none" or style.get("visibility") == "hidden":
            return True
        opacity = style.get("opacity")
        if opacity is not None:
            try:
                return float(opacity) == 0.0
            except ValueError:
                return False
        return False

    def is_visible(self, element: Tag) -> bool:
        """Check that neither the element nor an ancestor is hidden."""
        node: Optional[Tag] = element
        while node is not None and not isinstance(node, BeautifulSoup):
            if self._hides(node):
                return False
            node = node.parent
        return True

    def in_viewport(self, element: Tag) -> bool:
        box = self.rect(element)
        return box.top >= self.scroll_y and box.bottom <= self.scroll_y + self.viewport_height

    async def scroll_into_view(self, element: Tag) -> None:
        """Center the viewport on the element."""
        box = self.rect(element)
        self.scroll_y = max(0.0, box.top + box.height / 2 - self.viewport_height / 2)
        await asyncio.sleep(0)
