"""
Page loading from URLs and local HTML files.

Pages are parsed with BeautifulSoup (lxml) into a document the content
selector, pipeline and ledger operate on. Fetched pages are decoded with
explicit charset detection so non-UTF-8 pages do not turn into mojibake.
"""

import logging
import re
from pathlib import Path
from typing import Union
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from charset_normalizer import from_bytes

from .errors import ContentLoadError

logger = logging.getLogger(__name__)

# Default headers for web requests
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

HTML_SUFFIXES = {".html", ".htm", ".xhtml"}

META_CHARSET_RE = re.compile(r'<meta[^>]+charset=["\']?([^"\'>\s;]+)', re.I)


def decode_html(content: bytes, content_type: str = "") -> str:
    """
    Decode raw page bytes to text.

    Detection order:
    1. Content-Type header charset
    2. HTML meta charset tag in the first 8KB
    3. charset_normalizer detection
    4. UTF-8 with replacement characters

    Args:
        content: Raw response body.
        content_type: Value of the Content-Type header, if any.

    Returns:
        Decoded HTML string.
    """
    if "charset=" in content_type.lower():
        charset = content_type.lower().split("charset=")[-1].split(";")[0].strip().strip("\"'")
        try:
            return content.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug(f"Header charset {charset} failed: {e}")

    head_text = content[:8192].decode("ascii", errors="ignore")
    charset_match = META_CHARSET_RE.search(head_text)
    if charset_match:
        charset = charset_match.group(1)
        try:
            return content.decode(charset)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug(f"Meta charset {charset} failed: {e}")

    best = from_bytes(content).best()
    if best is not None:
        logger.debug(f"charset_normalizer detected: {best.encoding}")
        return str(best)

    return content.decode("utf-8", errors="replace")


def parse_html(html: str) -> BeautifulSoup:
    """Parse page HTML into a document."""
    return BeautifulSoup(html, "lxml")


def fetch_url_html(url: str, timeout: int = 30) -> BeautifulSoup:
    """
    Fetch and parse a web page.

    Args:
        url: The URL to fetch.
        timeout: Request timeout in seconds.

    Returns:
        Parsed document.

    Raises:
        ContentLoadError: If the URL is invalid or the request fails.
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ContentLoadError(f"Invalid URL: {url}")

    try:
        response = requests.get(url, headers=DEFAULT_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ContentLoadError(f"Failed to fetch URL: {e}")

    html = decode_html(response.content, response.headers.get("Content-Type", ""))
    logger.info(f"Fetched {url} ({len(html)} chars)")
    return parse_html(html)


def load_html_file(file_path: Union[str, Path]) -> BeautifulSoup:
    """
    Load and parse a local HTML file.

    Raises:
        ContentLoadError: If the file is missing or unreadable.
    """
    path = Path(file_path)
    if not path.exists():
        raise ContentLoadError(f"File not found: {file_path}")
    if path.suffix.lower() not in HTML_SUFFIXES:
        raise ContentLoadError(f"File must be an HTML file: {file_path}")

    try:
        content = path.read_bytes()
    except OSError as e:
        raise ContentLoadError(f"Failed to read HTML file: {e}")
    return parse_html(decode_html(content))


def load_html(source: str) -> BeautifulSoup:
    """
    Load a page from either a URL or a file path.

    Args:
        source: URL (http/https) or HTML file path.

    Returns:
        Parsed document.

    Raises:
        ContentLoadError: If the source is invalid or cannot be loaded.
    """
    parsed = urlparse(source)
    if parsed.scheme in ("http", "https"):
        return fetch_url_html(source)

    path = Path(source)
    if path.suffix.lower() in HTML_SUFFIXES:
        return load_html_file(path)

    raise ContentLoadError(
        f"Invalid source: {source}. Must be a URL (http/https) or an .html file path."
    )
