"""Lyrics extraction from catalog and web pages.

Site selectors are tried first. If none match, the page falls back to a
structural heuristic: strip markup and take the longest run of contiguous
non-empty lines, which on lyrics pages is almost always the lyrics block.
"""

import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from ....utils.logging import get_logger

logger = get_logger(__name__)

MIN_BLOCK_LINES = 8
MAX_LINE_LENGTH = 300

_BLOCK_TAGS = ["p", "div", "li", "tr", "pre", "section", "article", "h1", "h2", "h3", "h4"]
_NOISE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "form", "button", "iframe"]

# Genius page chrome mixed into lyrics containers
_GENIUS_CHROME_CLASSES = ["LyricsHeader", "SongBioPreview", "ContributorsCredit"]


def is_page_metadata(line: str) -> bool:
    """Check if a line is page metadata rather than lyrics."""
    # Skip lines with contributor counts
    if re.match(r"^\d+\s*Contributor", line):
        return True
    description_patterns = [
        "is a song by",
        "was released as",
        "Read More",
        "studio album",
        "Embed",
        "You might also like",
    ]
    if any(pattern in line for pattern in description_patterns):
        return True
    # Skip if line is extremely long (likely concatenated metadata)
    if len(line) > MAX_LINE_LENGTH:
        return True
    return False


def _element_text(element) -> str:
    for br in element.find_all("br"):
        br.replace_with("\n")
    lines = [line.strip() for line in element.get_text().split("\n")]
    out: List[str] = []
    for line in lines:
        if line and is_page_metadata(line):
            continue
        out.append(line)
    text = "\n".join(out)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def extract_by_selectors(html: str, selectors: Iterable[str]) -> Optional[str]:
    """Return the text of the first CSS selector that matches non-empty content.

    When a selector matches several elements (Genius splits lyrics over many
    containers) their texts are joined.
    """
    soup = BeautifulSoup(html, "html.parser")
    for selector in selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        for element in elements:
            for elem in element.find_all(
                ["div", "span", "a"],
                class_=lambda x: x and any(p in x for p in _GENIUS_CHROME_CLASSES),
            ):
                elem.decompose()
        text = "\n".join(_element_text(e) for e in elements).strip()
        if text:
            logger.debug(f"Extracted {len(text)} chars with selector {selector!r}")
            return text
    return None


def longest_line_block(text: str, min_lines: int = MIN_BLOCK_LINES) -> Optional[str]:
    """Longest run of contiguous non-empty lines in plain text.

    Single blank lines between stanzas do not break a run; two or more do.
    """
    best: List[str] = []
    current: List[str] = []
    blank_run = 0

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or len(line) > MAX_LINE_LENGTH:
            blank_run += 1
            if blank_run >= 2 and current:
                if _line_count(current) > _line_count(best):
                    best = current
                current = []
            elif current:
                current.append("")
            continue
        blank_run = 0
        current.append(line)

    if _line_count(current) > _line_count(best):
        best = current

    if _line_count(best) < min_lines:
        return None
    return "\n".join(best).strip()


def _line_count(lines: List[str]) -> int:
    return sum(1 for line in lines if line)


def html_to_text(html: str) -> str:
    """Strip markup, keeping line breaks."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_after("\n")
    return soup.get_text()


def extract_lyrics(
    html: str,
    selectors: Iterable[str] = (),
    min_lines: int = MIN_BLOCK_LINES,
) -> Optional[str]:
    """Extract a lyrics block from a page: site selectors, then the line heuristic."""
    if not html:
        return None
    text = extract_by_selectors(html, selectors)
    if text:
        return text
    block = longest_line_block(html_to_text(html), min_lines=min_lines)
    if block:
        logger.debug(f"Extracted {len(block)} chars with line heuristic")
    return block
