"""
Pytest fixtures and configuration for Page Proofreader tests.
"""

import pytest
from pathlib import Path

from bs4 import BeautifulSoup

from page_proofreader.config import ProofreaderConfig
from page_proofreader.correction_service import StaticCorrectionService
from page_proofreader.layout import StaticLayout


ERROR_SENTENCE = "Their are two erors in this sentence that a proofreader should catch quickly."
FIXED_SENTENCE = "There are two errors in this sentence that a proofreader should catch quickly."
CLEAN_SENTENCE = "Good writing is clear and concise, and it respects the reader's time and attention."


@pytest.fixture
def sample_html_content() -> str:
    """A small article page with navigation and footer chrome."""
    return f"""<!DOCTYPE html>
<html>
<head><title>Proofreading Guide</title><style>p {{ color: black; }}</style></head>
<body>
  <nav>
    <ul class="nav-menu">
      <li><a href="/articles">Read our latest articles about writing and editing.</a></li>
      <li><a href="/about">Learn more about the people who write this blog.</a></li>
    </ul>
  </nav>
  <main>
    <article class="post">
      <h1>Understanding Proofreading Tools Today</h1>
      <p id="first">{ERROR_SENTENCE}</p>
      <p id="second">{CLEAN_SENTENCE}</p>
      <blockquote>Writing is rewriting, as many editors like to remind their authors.</blockquote>
      <ul>
        <li>Proofreading catches spelling mistakes before readers ever see them.</li>
      </ul>
    </article>
  </main>
  <footer class="site-footer">
    <p>Copyright 2024 Example Corp. All rights reserved worldwide, forever and ever.</p>
  </footer>
</body>
</html>"""


@pytest.fixture
def sample_document(sample_html_content: str) -> BeautifulSoup:
    """Parsed sample article page."""
    return BeautifulSoup(sample_html_content, "lxml")


@pytest.fixture
def long_article_document() -> BeautifulSoup:
    """An article with 200 qualifying paragraphs."""
    paragraphs = "\n".join(
        f'<p data-index="{i}">Paragraph number {i} explains one more idea about careful editing.</p>'
        for i in range(200)
    )
    return BeautifulSoup(
        f"<html><body><main><article>{paragraphs}</article></main></body></html>",
        "lxml",
    )


@pytest.fixture
def blog_document() -> BeautifulSoup:
    """A paragraph-heavy blog post: one heading, six long paragraphs."""
    paragraphs = "\n".join(
        f"<p>This is paragraph {i} of the post, and it talks at length about writing habits.</p>"
        for i in range(6)
    )
    return BeautifulSoup(
        f'<html><body><article><h2>Habits of careful writers</h2>{paragraphs}</article></body></html>',
        "lxml",
    )


@pytest.fixture
def config() -> ProofreaderConfig:
    """Default configuration."""
    return ProofreaderConfig()


@pytest.fixture
def layout() -> StaticLayout:
    """Static layout provider."""
    return StaticLayout()


@pytest.fixture
def recorded_service() -> StaticCorrectionService:
    """Service that corrects the sample page's error sentence."""
    return StaticCorrectionService({
        ERROR_SENTENCE: {
            "correctedText": FIXED_SENTENCE,
            "corrections": [
                {"startIndex": 0, "endIndex": 5, "correction": "There", "type": "grammar",
                 "explanation": "Use 'there' for existence."},
                {"startIndex": 14, "endIndex": 19, "correction": "errors", "type": "spelling"},
            ],
        },
    })


@pytest.fixture
def corrections_file(tmp_path: Path) -> Path:
    """A recorded corrections replay file."""
    import json

    path = tmp_path / "corrections.json"
    path.write_text(json.dumps([
        {"text": ERROR_SENTENCE, "corrected_text": FIXED_SENTENCE},
    ]))
    return path


@pytest.fixture
def sample_html_file(tmp_path: Path, sample_html_content: str) -> Path:
    """Sample article written to disk."""
    path = tmp_path / "article.html"
    path.write_text(sample_html_content, encoding="utf-8")
    return path
