"""Data validation helpers.

ID conventions:
- book_id: title slug (lowercase, hyphens, no accents), e.g.
  "la-sangre-de-los-elfos"

Functions:
- generate_book_id(title) -> str: Slug for the output file name
- validate_book_index(data) -> list[str]: Check the reader contract of an
  output record
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

from lector.core.text_normalizer import normalize_for_comparison, word_count

MAX_BOOK_ID_CHARS = 80


def generate_book_id(title: str) -> str:
    """Generate a slug from a book title.

    Args:
        title: Book title

    Returns:
        Normalized slug like "la-sangre-de-los-elfos", or "book" if the
        title has no usable characters
    """
    text = unicodedata.normalize("NFKD", title)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = re.sub(r"-+", "-", text).strip("-")
    return text[:MAX_BOOK_ID_CHARS].rstrip("-") or "book"


def validate_book_index(data: dict[str, Any]) -> list[str]:
    """Check an output record against what the reader relies on.

    - paragraphs contiguous, ids sequential from 0 or 1
    - chapters re-indexed 0..n-1 with strictly increasing starts that
      reference existing paragraphs
    - no two chapters with the same normalized title
    - totalWords equal to the tokenized word count

    Args:
        data: Parsed JSON record

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    for key in ("id", "title", "paragraphs", "chapters", "totalWords"):
        if key not in data:
            errors.append(f"Falta el campo '{key}'")
    if errors:
        return errors

    paragraphs = data["paragraphs"]
    chapters = data["chapters"]

    base = paragraphs[0]["id"] if paragraphs else 0
    if base not in (0, 1):
        errors.append(f"El primer párrafo debe tener id 0 o 1 (tiene {base})")
    for position, paragraph in enumerate(paragraphs):
        if paragraph.get("id") != position + base:
            errors.append(f"Párrafo en posición {position} con id {paragraph.get('id')}")
            break
        if not str(paragraph.get("text", "")).strip():
            errors.append(f"Párrafo {paragraph.get('id')} vacío")

    seen_titles: set[str] = set()
    previous_start = None
    for position, chapter in enumerate(chapters):
        if chapter.get("index") != position:
            errors.append(f"Capítulo en posición {position} con index {chapter.get('index')}")
        start = chapter.get("startParagraphId")
        if not isinstance(start, int) or not base <= start < base + len(paragraphs):
            errors.append(f"Capítulo {position} apunta a un párrafo inexistente ({start})")
        elif previous_start is not None and start <= previous_start:
            errors.append(f"Capítulo {position} no empieza después del anterior")
        else:
            previous_start = start
        key = normalize_for_comparison(str(chapter.get("title", "")))
        if key in seen_titles:
            errors.append(f"Título de capítulo duplicado: {chapter.get('title')}")
        seen_titles.add(key)

    if paragraphs and not chapters:
        errors.append("Hay párrafos pero ningún capítulo")

    expected_words = sum(word_count(str(p.get("text", ""))) for p in paragraphs)
    if data["totalWords"] != expected_words:
        errors.append(f"totalWords={data['totalWords']} pero se cuentan {expected_words}")

    return errors
