"""EPUB container reading.

Responsibilities:
- Open the EPUB and fail loudly if it is unusable
- Expose content documents in spine (flow) order
- Convert the ebooklib TOC into TocNode trees
- Extract OPF metadata (title, author, language)

Dependencies:
- ebooklib
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import ebooklib
import structlog
from ebooklib import epub

from lector.core.toc_indexer import TocNode

logger = structlog.get_logger(__name__)

DOCUMENT_MEDIA_TYPES = ("application/xhtml+xml", "text/html")
DOCUMENT_EXTENSIONS = (".xhtml", ".html", ".htm")


@dataclass
class ContentDocument:
    """One content document of the spine."""

    id: str
    href: str
    content: bytes


@dataclass
class BookContainer:
    """Everything the extraction pipeline needs from a container."""

    title: str | None
    author: str | None
    documents: list[ContentDocument] = field(default_factory=list)
    toc: list[TocNode] = field(default_factory=list)
    language: str | None = None


class EpubReadError(Exception):
    """Base exception for EPUB reading errors."""

    pass


class InvalidEpubError(EpubReadError):
    """Raised when EPUB file is invalid or corrupted."""

    def __init__(self, file_path: Path, detail: str = ""):
        self.file_path = file_path
        msg = f"EPUB inválido o corrupto: {file_path.name}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


def open_epub(epub_path: Path) -> BookContainer:
    """Read an EPUB file into a BookContainer.

    Args:
        epub_path: Path to the .epub file

    Returns:
        BookContainer with documents in spine order

    Raises:
        FileNotFoundError: If the file doesn't exist
        InvalidEpubError: If the EPUB cannot be opened
    """
    if not epub_path.exists():
        raise FileNotFoundError(f"EPUB no encontrado: {epub_path}")

    logger.info("epub_reader.open", epub=epub_path.name)

    try:
        book = epub.read_epub(str(epub_path), options={"ignore_ncx": False})
    except Exception as e:
        raise InvalidEpubError(epub_path, str(e)) from e

    metadata = _extract_epub_metadata(book)
    documents = _get_spine_documents(book)
    toc = _convert_toc(book.toc or [])

    logger.info(
        "epub_reader.loaded",
        epub=epub_path.name,
        documents=len(documents),
        toc_roots=len(toc),
    )

    return BookContainer(
        title=metadata["title"],
        author=metadata["creator"],
        documents=documents,
        toc=toc,
        language=metadata["language"],
    )


def _is_content_document(item: epub.EpubItem) -> bool:
    # the EPUB3 navigation document is a TOC, not narrative
    if isinstance(item, epub.EpubNav):
        return False
    if item.get_type() == ebooklib.ITEM_DOCUMENT:
        return True
    media_type = getattr(item, "media_type", "") or ""
    if media_type in DOCUMENT_MEDIA_TYPES:
        return True
    return (item.get_name() or "").lower().endswith(DOCUMENT_EXTENSIONS)


def _get_spine_documents(book: epub.EpubBook) -> list[ContentDocument]:
    """Get content documents in reading order from the spine.

    Spine entries without a manifest item, or whose content cannot be
    read, are skipped.
    """
    documents = []
    for spine_entry in book.spine:
        item_id = spine_entry[0] if isinstance(spine_entry, tuple) else spine_entry
        item = book.get_item_with_id(item_id)
        if item is None:
            logger.warning("epub_reader.missing_spine_item", item_id=item_id)
            continue
        if not _is_content_document(item):
            continue

        try:
            content = item.get_content()
        except (KeyError, OSError) as e:
            logger.warning("epub_reader.unreadable_document", item_id=item_id, error=str(e))
            continue

        documents.append(
            ContentDocument(id=item.get_id() or item_id, href=item.get_name() or "", content=content)
        )
    return documents


def _convert_toc(items: list) -> list[TocNode]:
    """Convert ebooklib TOC items into TocNode trees.

    ebooklib yields ``Link`` objects, bare ``Section`` objects, or
    ``(Section, [children])`` tuples.
    """
    nodes = []
    for item in items:
        if isinstance(item, tuple):
            section, children = item
            node = _node_from(section)
            node.children = _convert_toc(list(children))
            nodes.append(node)
        elif isinstance(item, (epub.Link, epub.Section)):
            nodes.append(_node_from(item))
    return nodes


def _node_from(item) -> TocNode:
    return TocNode(
        title=getattr(item, "title", "") or "",
        href=getattr(item, "href", None) or None,
        uid=getattr(item, "uid", None) or None,
    )


def _extract_epub_metadata(book: epub.EpubBook) -> dict:
    """Extract metadata from EPUB.

    Args:
        book: EpubBook instance

    Returns:
        Dictionary with available metadata
    """

    def get_metadata(namespace, name):
        items = book.get_metadata(namespace, name)
        if items:
            return items[0][0] if isinstance(items[0], tuple) else items[0]
        return None

    return {
        "title": get_metadata("DC", "title"),
        "creator": get_metadata("DC", "creator"),
        "language": get_metadata("DC", "language"),
    }
