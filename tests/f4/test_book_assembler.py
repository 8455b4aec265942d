"""Tests for output assembly and serialization."""

import json

from lector.core.book_assembler import assemble_book, write_book_json
from lector.core.chapter_resolver import ResolutionTier, ResolvedChapter

PARAGRAPHS = [
    "Dedicatoria breve",
    "Capítulo 1",
    "\"Hola\" dijo el brujo.",
    "Capítulo 2",
    "Fin del libro",
]
CHAPTERS = [
    ResolvedChapter(index=0, title="Capítulo 1", start=1, tier=ResolutionTier.ANCHOR),
    ResolvedChapter(index=1, title="Capítulo 2", start=3, tier=ResolutionTier.ANCHOR),
]


class TestAssembleBook:
    """Tests for assemble_book."""

    def test_sequential_ids(self):
        book = assemble_book("libro", "Libro", None, PARAGRAPHS, CHAPTERS)
        assert [p.id for p in book.paragraphs] == [0, 1, 2, 3, 4]
        assert [c.start_paragraph_id for c in book.chapters] == [1, 3]

    def test_chapter_index_of_paragraphs(self):
        """Front matter belongs to chapter 0; the rest to the last chapter started."""
        book = assemble_book("libro", "Libro", None, PARAGRAPHS, CHAPTERS)
        assert [p.chapter_index for p in book.paragraphs] == [0, 0, 0, 1, 1]

    def test_total_words(self):
        """totalWords is the sum of tokenized paragraph lengths."""
        book = assemble_book("libro", "Libro", None, PARAGRAPHS, CHAPTERS)
        assert book.total_words == 2 + 2 + 4 + 2 + 3

    def test_one_based_ids(self):
        """With id base 1, chapter starts follow the paragraph ids."""
        book = assemble_book("libro", "Libro", None, PARAGRAPHS, CHAPTERS, id_base=1)
        assert book.paragraphs[0].id == 1
        assert [c.start_paragraph_id for c in book.chapters] == [2, 4]

    def test_empty_book(self):
        book = assemble_book("vacio", "Vacío", None, [], [])
        assert book.paragraphs == ()
        assert book.chapters == ()
        assert book.total_words == 0


class TestSerialization:
    """Tests for the JSON record."""

    def test_to_dict_keys(self):
        book = assemble_book("libro", "Libro", "Autor", PARAGRAPHS, CHAPTERS)
        data = book.to_dict()
        assert list(data) == ["id", "title", "author", "paragraphs", "chapters", "totalWords"]
        assert data["paragraphs"][2] == {"id": 2, "text": "\"Hola\" dijo el brujo.", "chapterIndex": 0}
        assert data["chapters"][1] == {"index": 1, "title": "Capítulo 2", "startParagraphId": 3}

    def test_author_omitted_when_absent(self):
        data = assemble_book("libro", "Libro", None, PARAGRAPHS, CHAPTERS).to_dict()
        assert "author" not in data

    def test_write_book_json(self, tmp_path):
        book = assemble_book("libro", "Libro", "Autor", PARAGRAPHS, CHAPTERS)
        path = write_book_json(book, tmp_path / "out" / "libro.json")

        raw = path.read_text(encoding="utf-8")
        assert "Capítulo 1" in raw  # not ASCII-escaped
        assert json.loads(raw) == book.to_dict()
