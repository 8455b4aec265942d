"""Text normalization helpers.

Responsibilities:
- Collapse whitespace for display text
- Build case/diacritic-insensitive comparison keys
- Normalize EPUB hrefs so TOC and manifest paths compare equal
- Tokenize paragraphs into words (basis of every word count)

IMPORTANT: comparison keys are only used for matching and deduplication.
Display text always keeps the author's casing and punctuation.
"""

from __future__ import annotations

import re
import unicodedata
from urllib.parse import unquote

# Constants
WHITESPACE_PATTERN = re.compile(r"\s+")
TOKEN_QUOTES = "\"'"
CONTAINER_ROOT_PREFIXES = ("oebps/", "ops/", "epub/")
RELATIVE_PREFIXES = ("./", "../", "/")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim.

    Args:
        text: Raw text

    Returns:
        Text with single spaces and no leading/trailing whitespace
    """
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def normalize_for_comparison(text: str) -> str:
    """Build a comparison key: case-folded, without diacritics.

    "Índice" and "indice" produce the same key.

    Args:
        text: Text to normalize

    Returns:
        Comparison key
    """
    # casefold first: it can introduce combining marks ("İ" -> "i̇")
    text = text.casefold()
    text = unicodedata.normalize("NFD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    return normalize_whitespace(text)


def normalize_path(href: str) -> str:
    """Normalize an EPUB href to a canonical document path.

    Args:
        href: Path as found in the manifest or the TOC (without fragment)

    Returns:
        Lower-cased path without relative or container-root prefixes
    """
    path = unquote(href).strip().replace("\\", "/")

    stripped = True
    while stripped:
        stripped = False
        for prefix in RELATIVE_PREFIXES:
            if path.startswith(prefix):
                path = path[len(prefix):]
                stripped = True

    path = path.lower()
    for prefix in CONTAINER_ROOT_PREFIXES:
        if path.startswith(prefix):
            path = path[len(prefix):]
            break

    return path


def path_filename(path: str) -> str:
    """Return the bare file name of a normalized path."""
    return path.rsplit("/", 1)[-1]


def split_href(href: str) -> tuple[str, str | None]:
    """Split ``file#anchor`` into normalized path and raw anchor.

    Args:
        href: Href as declared in the TOC

    Returns:
        Tuple of (normalized_path, anchor or None)
    """
    file_part, sep, fragment = href.partition("#")
    anchor = unquote(fragment).strip() if sep else ""
    return normalize_path(file_part), anchor or None


def tokenize(text: str) -> list[str]:
    """Split text into words.

    Leading/trailing straight quotes are stripped from each token and empty
    tokens dropped. Downstream progress calculations depend on this exact
    behavior.

    Args:
        text: Paragraph text

    Returns:
        List of words
    """
    words = (token.strip(TOKEN_QUOTES) for token in text.split())
    return [word for word in words if word]


def word_count(text: str) -> int:
    """Number of words in text, as counted by ``tokenize``."""
    return len(tokenize(text))
