"""Batch orchestrator: EPUB in, reading index JSON out.

Responsibilities:
- Index the TOC once
- Extract and resolve each content document in flow order
- Skip documents that yield no text
- Run the global chapter fallbacks and assemble the output
- Write {output_dir}/{book_id}.json and report metrics

Dependencies:
- langdetect
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog
from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException

from lector.config.app_config import AppConfig, load_app_config
from lector.core.book_assembler import BookIndex, assemble_book, write_book_json
from lector.core.chapter_resolver import ChapterResolver, DocumentState
from lector.core.content_extractor import extract_units
from lector.core.epub_reader import BookContainer, open_epub
from lector.core.toc_indexer import build_toc_index
from lector.utils.validators import generate_book_id

# Make langdetect deterministic
DetectorFactory.seed = 0

logger = structlog.get_logger(__name__)

LANGUAGE_SAMPLE_CHARS = 10000
DEFAULT_TITLE = "Sin título"


@dataclass
class ProcessingMetrics:
    """Metrics from one extraction run."""

    total_documents: int
    skipped_documents: int
    total_paragraphs: int
    total_chapters: int
    toc_entries: int
    total_words: int
    fallback_triggered: bool = False
    tier_counts: dict[str, int] = field(default_factory=dict)
    detected_language: str | None = None


@dataclass
class ProcessResult:
    """Result of processing a book."""

    success: bool
    book: BookIndex
    metrics: ProcessingMetrics
    message: str
    output_path: Path | None = None


class BookProcessingError(Exception):
    """Raised when the output of a run cannot be produced."""

    pass


def process_container(
    container: BookContainer,
    book_id: str | None = None,
    config: AppConfig | None = None,
) -> ProcessResult:
    """Build the reading index of an opened container.

    Args:
        container: Documents, TOC and metadata
        book_id: Output identifier (slug of the title if not provided)
        config: Configuration (loaded if not provided)

    Returns:
        ProcessResult with the assembled book (not written to disk)
    """
    config = config or load_app_config()
    extraction = config.extraction

    title = container.title or DEFAULT_TITLE
    book_id = book_id or config.output.book_id or generate_book_id(title)

    toc = build_toc_index(container.toc)
    resolver = ChapterResolver(toc, extraction)

    paragraph_texts: list[str] = []
    skipped = 0

    for document in container.documents:
        units = extract_units(document.content, min_chars=extraction.min_paragraph_chars)
        if not units:
            skipped += 1
            logger.debug("book_processor.document_skipped", document=document.href or document.id)
            continue

        state = resolver.resolve_document(document, units, offset=len(paragraph_texts))
        if state is DocumentState.NO_MATCH:
            logger.debug("book_processor.document_unmatched", document=document.href or document.id)

        paragraph_texts.extend(unit.text for unit in units)

    resolution = resolver.finalize(paragraph_texts)

    book = assemble_book(
        book_id=book_id,
        title=title,
        author=container.author,
        paragraph_texts=paragraph_texts,
        chapters=resolution.chapters,
        id_base=config.output.paragraph_id_base,
    )

    detected_language = _detect_language(paragraph_texts) or container.language

    metrics = ProcessingMetrics(
        total_documents=len(container.documents),
        skipped_documents=skipped,
        total_paragraphs=len(book.paragraphs),
        total_chapters=len(book.chapters),
        toc_entries=resolution.expected_entries,
        total_words=book.total_words,
        fallback_triggered=resolution.fallback_triggered,
        tier_counts=resolution.tier_counts,
        detected_language=detected_language,
    )

    logger.info(
        "book_processor.summary",
        book_id=book_id,
        paragraphs=metrics.total_paragraphs,
        chapters=metrics.total_chapters,
        toc_entries=metrics.toc_entries,
        skipped_documents=skipped,
        fallback=metrics.fallback_triggered,
        tiers=metrics.tier_counts,
        detected_language=detected_language,
    )

    message = (
        f"Procesados {metrics.total_paragraphs} párrafos, "
        f"{metrics.total_chapters} capítulos (TOC con {metrics.toc_entries} entradas)"
    )

    return ProcessResult(success=True, book=book, metrics=metrics, message=message)


def process_epub(
    epub_path: Path | None = None,
    output_dir: Path | None = None,
    book_id: str | None = None,
    config: AppConfig | None = None,
) -> ProcessResult:
    """Process an EPUB and write the reading index JSON.

    Args:
        epub_path: Source EPUB (defaults to config.output.epub_path)
        output_dir: Output directory (defaults to config.output.output_dir)
        book_id: Output identifier (defaults to config, then title slug)
        config: Configuration (loaded if not provided)

    Returns:
        ProcessResult with output_path set

    Raises:
        FileNotFoundError: If the EPUB doesn't exist
        InvalidEpubError: If the EPUB cannot be opened
        BookProcessingError: If the output cannot be written
    """
    config = config or load_app_config()
    epub_path = epub_path or Path(config.output.epub_path)
    output_dir = output_dir or Path(config.output.output_dir)

    container = open_epub(epub_path)
    if not container.title:
        container.title = epub_path.stem

    result = process_container(container, book_id=book_id, config=config)

    output_path = output_dir / f"{result.book.id}.json"
    try:
        write_book_json(result.book, output_path)
    except OSError as e:
        raise BookProcessingError(f"No se pudo escribir {output_path}: {e}") from e

    result.output_path = output_path
    logger.info("book_processor.written", path=str(output_path))
    return result


def _detect_language(paragraphs: list[str]) -> str | None:
    """Detect language of the extracted text using langdetect.

    Args:
        paragraphs: Paragraph texts

    Returns:
        ISO 639-1 language code or None if detection fails
    """
    sample = " ".join(paragraphs)[:LANGUAGE_SAMPLE_CHARS]
    if not sample.strip():
        return None
    try:
        return detect(sample)
    except LangDetectException as e:
        logger.debug("book_processor.language_detection_failed", error=str(e))
        return None
