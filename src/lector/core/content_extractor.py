"""Paragraph extraction from EPUB content documents.

Responsibilities:
- Turn one XHTML document into ordered paragraph units
- Avoid extracting a wrapper and its children twice
- Attribute element ids (including empty "ghost" anchors) to the
  paragraph they mark
- Fall back to the whole body text when no structure survives

Dependencies:
- beautifulsoup4
- lxml
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Iterable

import structlog
from bs4 import BeautifulSoup, Comment, Tag, XMLParsedAsHTMLWarning
from bs4.builder import ParserRejectedMarkup

from lector.core.text_normalizer import normalize_for_comparison, normalize_whitespace

logger = structlog.get_logger(__name__)

# Constants
MIN_PARAGRAPH_CHARS = 2
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
TEXT_TAGS = ("p",) + HEADING_TAGS
CONTAINER_TAGS = ("li", "div", "section", "article", "blockquote")
CANDIDATE_TAGS = TEXT_TAGS + CONTAINER_TAGS
NON_CONTENT_TAGS = ["script", "style", "head", "meta", "link", "title", "noscript"]


@dataclass
class ExtractedUnit:
    """One paragraph-level text unit and the anchors that point at it."""

    text: str
    anchors: list[str] = field(default_factory=list)


def extract_units(
    markup: bytes | str,
    min_chars: int = MIN_PARAGRAPH_CHARS,
) -> list[ExtractedUnit]:
    """Extract ordered paragraph units from one content document.

    Args:
        markup: Raw XHTML of the document
        min_chars: Minimum normalized length of a unit

    Returns:
        List of ExtractedUnit in document order. Empty if the markup
        cannot be parsed or holds no text.
    """
    soup = _parse_markup(markup)
    if soup is None:
        return []

    seen_anchors: set[str] = set()
    units: list[ExtractedUnit] = []

    for element in soup.find_all(CANDIDATE_TAGS):
        text = normalize_whitespace(element.get_text(separator=" "))
        if len(text) < min_chars:
            continue
        if element.name in CONTAINER_TAGS and element.find(CANDIDATE_TAGS) is not None:
            continue

        anchors = []
        for anchor in _collect_anchors(element):
            if anchor not in seen_anchors:
                seen_anchors.add(anchor)
                anchors.append(anchor)
        units.append(ExtractedUnit(text=text, anchors=anchors))

    if not units:
        root = soup.body or soup
        text = normalize_whitespace(root.get_text(separator=" "))
        if len(text) >= min_chars:
            logger.debug("content_extractor.whole_text_fallback", chars=len(text))
            units.append(ExtractedUnit(text=text))

    return units


def extract_first_heading(
    markup: bytes | str,
    ignored_headings: Iterable[str] = (),
    min_chars: int = MIN_PARAGRAPH_CHARS,
) -> str | None:
    """Find the first heading that can name a chapter.

    Args:
        markup: Raw XHTML of the document
        ignored_headings: Heading texts that never name a chapter
            (table of contents, copyright, cover...)
        min_chars: Minimum normalized length of the heading

    Returns:
        Heading text (whitespace-normalized) or None
    """
    soup = _parse_markup(markup)
    if soup is None:
        return None

    ignored = {normalize_for_comparison(h) for h in ignored_headings}

    for heading in soup.find_all(HEADING_TAGS):
        text = normalize_whitespace(heading.get_text(separator=" "))
        if len(text) < min_chars:
            continue
        if normalize_for_comparison(text) in ignored:
            continue
        return text

    return None


def _parse_markup(markup: bytes | str) -> BeautifulSoup | None:
    """Parse XHTML leniently, dropping non-content elements.

    Returns:
        Parsed soup or None if the markup is rejected by the parser
    """
    if isinstance(markup, bytes):
        try:
            markup = markup.decode("utf-8")
        except UnicodeDecodeError:
            # not UTF-8: bytes go to BeautifulSoup, which honours the declared encoding
            pass

    try:
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
            soup = BeautifulSoup(markup, "lxml")
    except ParserRejectedMarkup as e:
        logger.warning("content_extractor.parse_failed", error=str(e))
        return None

    for element in soup(NON_CONTENT_TAGS):
        element.decompose()

    return soup


def _element_ids(element: Tag) -> list[str]:
    """Identifiers declared on a single element."""
    ids = []
    element_id = element.get("id")
    if element_id:
        ids.append(element_id.strip())
    if element.name == "a":
        name = element.get("name")
        if name:
            ids.append(name.strip())
    return [i for i in ids if i]


def _collect_anchors(element: Tag) -> list[str]:
    """Collect anchors pointing at a paragraph unit.

    Order: preceding empty siblings (nearest last), the unit itself, its
    parent, then its descendants.
    """
    ghosts: list[str] = []
    for sibling in element.previous_siblings:
        if isinstance(sibling, Comment):
            continue
        if not isinstance(sibling, Tag):
            if str(sibling).strip():
                break
            continue
        if normalize_whitespace(sibling.get_text()):
            break
        ghosts = _element_ids(sibling) + [
            i for d in sibling.find_all(True) for i in _element_ids(d)
        ] + ghosts

    anchors = ghosts + _element_ids(element)
    if isinstance(element.parent, Tag):
        anchors += _element_ids(element.parent)
    for descendant in element.find_all(True):
        anchors += _element_ids(descendant)

    return list(dict.fromkeys(anchors))
