"""Helpers over a book index, as the reader application uses it.

They operate on the serialized record (``BookIndex.to_dict()`` or the
loaded JSON), so they double as executable documentation of the output
contract: chapters sorted by ``startParagraphId``, paragraphs contiguous.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from lector.core.text_normalizer import tokenize


@dataclass(frozen=True)
class ReadingPosition:
    """A word inside a paragraph."""

    paragraph_id: int
    word_index: int = 0


def _paragraph_at(book: dict[str, Any], paragraph_id: int) -> dict[str, Any] | None:
    paragraphs = book.get("paragraphs") or []
    if not paragraphs:
        return None
    position = paragraph_id - paragraphs[0]["id"]
    if 0 <= position < len(paragraphs):
        return paragraphs[position]
    return None


def find_chapter_for_paragraph(book: dict[str, Any], paragraph_id: int) -> dict[str, Any] | None:
    """Last chapter whose start is at or before the paragraph.

    Paragraphs before the first chapter map to the first chapter.
    """
    chapters = book.get("chapters") or []
    if not chapters:
        return None

    current = chapters[0]
    for chapter in chapters:
        if chapter["startParagraphId"] <= paragraph_id:
            current = chapter
        else:
            break
    return current


def calculate_percent_complete(book: dict[str, Any], position: ReadingPosition) -> int:
    """Rounded percentage of words before the position (0-100)."""
    paragraphs = book.get("paragraphs") or []
    total_words = book.get("totalWords") or 0
    if not paragraphs or not total_words:
        return 0

    words_before = 0
    for paragraph in paragraphs:
        words = len(tokenize(paragraph["text"]))
        if paragraph["id"] < position.paragraph_id:
            words_before += words
        elif paragraph["id"] == position.paragraph_id:
            words_before += max(0, min(words, position.word_index))
            break

    percent = words_before / total_words * 100
    return max(0, min(100, round(percent)))


def get_word_at_position(book: dict[str, Any], position: ReadingPosition) -> str | None:
    paragraph = _paragraph_at(book, position.paragraph_id)
    if paragraph is None:
        return None

    words = tokenize(paragraph["text"])
    if 0 <= position.word_index < len(words):
        return words[position.word_index]
    return None


def get_next_position(book: dict[str, Any], position: ReadingPosition) -> ReadingPosition | None:
    """Position of the next word, skipping paragraphs without words.

    Returns:
        Next ReadingPosition, or None at the end of the book
    """
    paragraph = _paragraph_at(book, position.paragraph_id)
    if paragraph is None:
        return None

    if position.word_index + 1 < len(tokenize(paragraph["text"])):
        return ReadingPosition(position.paragraph_id, position.word_index + 1)

    next_id = position.paragraph_id + 1
    while (next_paragraph := _paragraph_at(book, next_id)) is not None:
        if tokenize(next_paragraph["text"]):
            return ReadingPosition(next_id, 0)
        next_id += 1

    return None
