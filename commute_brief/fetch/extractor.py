"""
Content normalization for feed article bodies.

Turns noisy HTML (or plain text) into clean paragraph text:
1. Parse with BeautifulSoup and drop non-content elements entirely
2. Pick the content root from a fixed list of CMS selectors (first match wins)
3. Walk the tree, turning block elements into line breaks
4. Filter lines: bare URLs, boilerplate, navigation leftovers
5. Rejoin surviving lines with exactly one blank line between them
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

logger = logging.getLogger(__name__)

# Elements removed together with everything inside them
REMOVE_TAGS = [
    "script", "style", "noscript", "iframe", "svg", "button", "input", "select", "textarea",
    "nav", "footer", "header", "aside", "form", "img", "video", "source",
]

# Likely content containers, in priority order
CONTENT_SELECTORS = [
    "article",
    '[itemprop="articleBody"]',
    ".article-content",
    ".entry-content",
    ".post-content",
    ".rich_media_content",  # WeChat official accounts
    "#content",
    ".main-content",
    ".content",
]

BLOCK_TAGS = {
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "br", "tr", "section", "article",
}

NOISE_PATTERNS = [
    re.compile(r"查看次数|阅读量|Viewed by|Read count", re.IGNORECASE),
    re.compile(r"^(来源|Source)\s*[：:]", re.IGNORECASE),
    re.compile(r"^(作者|Author)\s*[：:]", re.IGNORECASE),
    re.compile(r"^发布时间[：:]", re.IGNORECASE),
    re.compile(r"^Posted on", re.IGNORECASE),
    re.compile(r"版权所有|All Rights Reserved|Copyright", re.IGNORECASE),
    re.compile(r"点击这里|点击阅读|Read more|Read full|全文阅读", re.IGNORECASE),
    re.compile(r"关注我们|Subscribe", re.IGNORECASE),
    re.compile(r"相关阅读|推荐阅读|Related posts|Related reading", re.IGNORECASE),
    re.compile(r"分享到|Share to", re.IGNORECASE),
]

NAV_WORD_RE = re.compile(r"^(Home|Menu|Top|Back|Next|Previous|Log in|Sign up)$", re.IGNORECASE)
URL_LINE_RE = re.compile(r"^https?://", re.IGNORECASE)
CJK_RE = re.compile(r"[一-龥]")


def normalize(raw: str) -> str:
    """Convert raw markup or text into clean paragraph text.

    Never raises: a parse failure is logged and yields an empty string.

    Args:
        raw: HTML fragment, full HTML document, or plain text

    Returns:
        Substantive lines joined with a single blank line between them

    Examples:
        >>> normalize("<p>First</p><script>x()</script><p>Second</p>")
        'First\\n\\nSecond'
    """
    if not raw:
        return ""
    try:
        soup = BeautifulSoup(raw, "html.parser")
        for tag in soup.find_all(REMOVE_TAGS):
            tag.extract()
        text = "".join(_collect_text(_content_root(soup)))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Content normalization failed", extra={"error": str(exc)})
        return ""
    return clean_lines(text)


def _content_root(soup: BeautifulSoup) -> Tag:
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            return element
    return soup.body or soup


def _collect_text(node) -> list[str]:
    """Concatenate text nodes, emitting line breaks after block elements."""
    if isinstance(node, NavigableString):
        # comments, doctypes and CDATA are not visible text
        if isinstance(node, PreformattedString):
            return []
        return [str(node)]
    if not isinstance(node, Tag):
        return []

    parts: list[str] = []
    for child in node.children:
        parts.extend(_collect_text(child))

    name = (node.name or "").lower()
    if name in BLOCK_TAGS:
        parts.append("\n")
        if name == "p":
            parts.append("\n")
    return parts


def clean_lines(text: str) -> str:
    """Filter noise line by line and rejoin with blank-line separation."""
    kept: list[str] = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        if is_bare_url(line):
            continue
        if any(pattern.search(line) for pattern in NOISE_PATTERNS):
            continue
        if _is_nav_leftover(line):
            continue
        kept.append(line)
    return "\n\n".join(kept)


def is_bare_url(line: str) -> bool:
    """A line that is just a link, with no CJK text around it."""
    if not URL_LINE_RE.match(line):
        return False
    if CJK_RE.search(line):
        return False
    return len(line) > 15 or not re.search(r"\s", line)


def _is_nav_leftover(line: str) -> bool:
    if CJK_RE.search(line):
        return False
    if len(line.split(" ")) >= 3 or len(line) >= 20:
        return False
    return bool(NAV_WORD_RE.match(line))
