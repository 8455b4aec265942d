"""Output assembly: the flat paragraph/chapter index consumed by the reader.

Output format (compact UTF-8 JSON):

    {
      "id": "la-sangre-de-los-elfos",
      "title": "...",
      "author": "...",            # omitted when unknown
      "paragraphs": [{"id": 0, "text": "...", "chapterIndex": 0}, ...],
      "chapters": [{"index": 0, "title": "...", "startParagraphId": 0}, ...],
      "totalWords": 12345
    }
"""

from __future__ import annotations

import json
from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import structlog

from lector.core.chapter_resolver import ResolvedChapter
from lector.core.text_normalizer import word_count

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Paragraph:
    id: int
    text: str
    chapter_index: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "chapterIndex": self.chapter_index}


@dataclass(frozen=True)
class Chapter:
    index: int
    title: str
    start_paragraph_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "title": self.title,
            "startParagraphId": self.start_paragraph_id,
        }


@dataclass(frozen=True)
class BookIndex:
    """Assembled book, ready to serialize."""

    id: str
    title: str
    author: str | None
    paragraphs: tuple[Paragraph, ...]
    chapters: tuple[Chapter, ...]
    total_words: int

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.author:
            data["author"] = self.author
        data["paragraphs"] = [p.to_dict() for p in self.paragraphs]
        data["chapters"] = [c.to_dict() for c in self.chapters]
        data["totalWords"] = self.total_words
        return data


def assemble_book(
    book_id: str,
    title: str,
    author: str | None,
    paragraph_texts: Sequence[str],
    chapters: Sequence[ResolvedChapter],
    id_base: int = 0,
) -> BookIndex:
    """Build the globally indexed paragraph and chapter lists.

    Paragraphs before the first chapter start belong to chapter 0.

    Args:
        book_id: Output identifier
        title: Book title
        author: Book author or None
        paragraph_texts: Paragraph texts in flow order
        chapters: Resolved chapters sorted by start position
        id_base: First paragraph id (0 or 1)

    Returns:
        BookIndex
    """
    starts = [chapter.start for chapter in chapters]

    paragraphs = []
    for position, text in enumerate(paragraph_texts):
        chapter_index = max(bisect_right(starts, position) - 1, 0)
        paragraphs.append(Paragraph(id=position + id_base, text=text, chapter_index=chapter_index))

    book_chapters = tuple(
        Chapter(index=i, title=chapter.title, start_paragraph_id=chapter.start + id_base)
        for i, chapter in enumerate(chapters)
    )

    total_words = sum(word_count(paragraph.text) for paragraph in paragraphs)

    return BookIndex(
        id=book_id,
        title=title,
        author=author,
        paragraphs=tuple(paragraphs),
        chapters=book_chapters,
        total_words=total_words,
    )


def write_book_json(book: BookIndex, output_path: Path) -> Path:
    """Serialize the book index to disk.

    Args:
        book: Assembled book
        output_path: Destination JSON file (parent dirs are created)

    Returns:
        The written path
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(book.to_dict(), f, ensure_ascii=False, separators=(",", ":"))

    logger.debug("book_assembler.written", path=str(output_path))
    return output_path
