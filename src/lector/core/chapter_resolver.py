"""Chapter resolution: reconcile the TOC with the extracted paragraphs.

Resolution runs per content document, in flow order:

1. Anchor match: a paragraph carrying an anchor the TOC points at starts
   that chapter. Several chapters may start in one document.
2. Document match (only if step 1 found nothing in the document): TOC entry
   by the document's id, by its path, or the first meaningful heading of
   the document itself. The chapter starts at the document's first
   paragraph.
3. Fuzzy fallback (after all documents): if fewer than half of the TOC
   entries were resolved, chapters are rebuilt by matching every TOC title
   against the paragraph texts.

If nothing resolves, a single chapter covering the whole book is produced.
Chapter titles are unique by comparison key.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

import structlog

from lector.config.app_config import ExtractionConfig
from lector.core.content_extractor import ExtractedUnit, extract_first_heading
from lector.core.epub_reader import ContentDocument
from lector.core.text_normalizer import normalize_for_comparison
from lector.core.toc_indexer import TocEntry, TocIndex

logger = structlog.get_logger(__name__)

NUMBERED_TITLE_PATTERN = re.compile(r"^(\d+)\.\s*(.+)$")


class ResolutionTier(str, Enum):
    """Strategy that produced a chapter."""

    ANCHOR = "anchor"
    DOCUMENT_ID = "document_id"
    DOCUMENT_PATH = "document_path"
    HEADING = "heading"
    FUZZY = "fuzzy"
    WHOLE_BOOK = "whole_book"


class DocumentState(str, Enum):
    """Outcome of resolving one content document."""

    NO_MATCH = "no_match"
    ANCHOR_MATCHED = "anchor_matched"
    DOCUMENT_MATCHED = "document_matched"


@dataclass(frozen=True)
class ChapterMatch:
    """A chapter title found for a document."""

    title: str
    tier: ResolutionTier


@dataclass(frozen=True)
class ResolvedChapter:
    """Chapter start expressed as a position in the paragraph list."""

    index: int
    title: str
    start: int
    tier: ResolutionTier


@dataclass
class ResolutionContext:
    """Read-only inputs plus the seen-title set of one resolution pass."""

    toc: TocIndex
    config: ExtractionConfig
    seen_titles: set[str] = field(default_factory=set)
    ignored_titles: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        self.ignored_titles = frozenset(
            normalize_for_comparison(title) for title in self.config.ignored_headings
        )

    def is_new(self, title: str) -> bool:
        return normalize_for_comparison(title) not in self.seen_titles

    def accepts(self, title: str | None) -> bool:
        """Unseen and not a known non-chapter title."""
        if not title:
            return False
        key = normalize_for_comparison(title)
        return key not in self.seen_titles and key not in self.ignored_titles

    def mark_seen(self, title: str) -> None:
        self.seen_titles.add(normalize_for_comparison(title))


@dataclass
class ResolutionResult:
    """Final chapter list and how it was obtained."""

    chapters: list[ResolvedChapter]
    expected_entries: int
    fallback_triggered: bool = False
    tier_counts: dict[str, int] = field(default_factory=dict)


DocumentStrategy = Callable[[ContentDocument, ResolutionContext], "ChapterMatch | None"]


def match_by_document_id(document: ContentDocument, context: ResolutionContext) -> ChapterMatch | None:
    title = context.toc.title_for_id(document.id)
    if context.accepts(title):
        return ChapterMatch(title=title, tier=ResolutionTier.DOCUMENT_ID)
    return None


def match_by_document_path(document: ContentDocument, context: ResolutionContext) -> ChapterMatch | None:
    if not document.href:
        return None
    title = context.toc.title_for_path(document.href)
    if context.accepts(title):
        return ChapterMatch(title=title, tier=ResolutionTier.DOCUMENT_PATH)
    return None


def match_by_heading(document: ContentDocument, context: ResolutionContext) -> ChapterMatch | None:
    title = extract_first_heading(
        document.content,
        ignored_headings=context.config.ignored_headings,
        min_chars=context.config.min_paragraph_chars,
    )
    if title and context.is_new(title):
        return ChapterMatch(title=title, tier=ResolutionTier.HEADING)
    return None


DOCUMENT_STRATEGIES: tuple[DocumentStrategy, ...] = (
    match_by_document_id,
    match_by_document_path,
    match_by_heading,
)


def title_matches_paragraph(
    title_key: str,
    paragraph_key: str,
    length_window: int,
    chapter_words: Sequence[str] = (),
) -> bool:
    """Fuzzy predicate used by the fallback pass.

    Both arguments must already be comparison keys.
    """
    if not title_key or not paragraph_key:
        return False
    if paragraph_key == title_key:
        return True
    if paragraph_key.startswith(title_key + " "):
        return True
    if paragraph_key in (title_key + ".", title_key + ","):
        return True
    if abs(len(paragraph_key) - len(title_key)) <= length_window and title_key in paragraph_key:
        return True

    numbered = NUMBERED_TITLE_PATTERN.match(title_key)
    if numbered:
        number, rest = numbered.groups()
        forms = {number, rest.strip()}
        forms.update(f"{word} {number}" for word in chapter_words)
        return paragraph_key in forms

    return False


def fuzzy_match_chapters(
    entries: Sequence[TocEntry],
    paragraphs: Sequence[str],
    config: ExtractionConfig,
) -> list[ResolvedChapter]:
    """Locate TOC titles in the paragraph texts.

    Each entry takes the first unclaimed paragraph that matches. The result
    is sorted by paragraph position and re-indexed.

    Args:
        entries: TOC entries in declaration order
        paragraphs: Paragraph texts of the whole book
        config: Extraction heuristics

    Returns:
        Resolved chapters in paragraph order
    """
    paragraph_keys = [normalize_for_comparison(p) for p in paragraphs]
    chapter_words = [normalize_for_comparison(w) for w in config.chapter_words]
    seen_titles: set[str] = set()
    claimed: set[int] = set()
    found: list[ResolvedChapter] = []

    for entry in entries:
        title_key = normalize_for_comparison(entry.title)
        if title_key in seen_titles:
            continue
        for position, paragraph_key in enumerate(paragraph_keys):
            if position in claimed:
                continue
            if title_matches_paragraph(
                title_key, paragraph_key, config.fuzzy_length_window, chapter_words
            ):
                seen_titles.add(title_key)
                claimed.add(position)
                found.append(
                    ResolvedChapter(
                        index=0, title=entry.title, start=position, tier=ResolutionTier.FUZZY
                    )
                )
                break

    found.sort(key=lambda chapter: chapter.start)
    return reindex(found)


def reindex(chapters: Sequence[ResolvedChapter]) -> list[ResolvedChapter]:
    """Reassign contiguous indexes in list order."""
    return [
        ResolvedChapter(index=i, title=c.title, start=c.start, tier=c.tier)
        for i, c in enumerate(chapters)
    ]


class ChapterResolver:
    """Incremental resolver fed one document at a time, in flow order."""

    def __init__(self, toc: TocIndex, config: ExtractionConfig | None = None):
        self.context = ResolutionContext(toc=toc, config=config or ExtractionConfig())
        self.chapters: list[ResolvedChapter] = []

    @property
    def toc(self) -> TocIndex:
        return self.context.toc

    def resolve_document(
        self,
        document: ContentDocument,
        units: Sequence[ExtractedUnit],
        offset: int,
    ) -> DocumentState:
        """Find the chapters starting in one document.

        Args:
            document: Content document being processed
            units: Its extracted paragraph units (non-empty)
            offset: Position of its first paragraph in the book

        Returns:
            DocumentState describing which tier matched
        """
        if not units:
            return DocumentState.NO_MATCH

        if self._match_anchors(document, units, offset):
            return DocumentState.ANCHOR_MATCHED

        for strategy in DOCUMENT_STRATEGIES:
            match = strategy(document, self.context)
            if match is not None:
                self._emit(match.title, offset, match.tier)
                return DocumentState.DOCUMENT_MATCHED

        return DocumentState.NO_MATCH

    def finalize(self, paragraphs: Sequence[str]) -> ResolutionResult:
        """Apply the global fallbacks and re-index.

        Args:
            paragraphs: Paragraph texts of the whole book, in order

        Returns:
            ResolutionResult with the final chapter list
        """
        config = self.context.config
        expected = len(self.toc.entries)
        chapters = list(self.chapters)
        fallback_triggered = False

        if (
            expected >= config.min_toc_entries_for_fallback
            and len(chapters) < expected * config.fallback_ratio
        ):
            fallback_triggered = True
            logger.info(
                "chapter_resolver.fallback_triggered",
                chapters_found=len(chapters),
                toc_entries=expected,
            )
            # incremental chapters are discarded even if the fuzzy pass finds nothing
            fuzzy = fuzzy_match_chapters(self.toc.entries, paragraphs, config)
            if not fuzzy:
                logger.warning(
                    "chapter_resolver.fallback_empty",
                    discarded_chapters=len(chapters),
                )
            chapters = fuzzy

        if not chapters and paragraphs:
            logger.info("chapter_resolver.whole_book_chapter", paragraphs=len(paragraphs))
            chapters = [
                ResolvedChapter(
                    index=0,
                    title=config.whole_book_title,
                    start=0,
                    tier=ResolutionTier.WHOLE_BOOK,
                )
            ]

        chapters = reindex(chapters)
        tier_counts = Counter(chapter.tier.value for chapter in chapters)

        return ResolutionResult(
            chapters=chapters,
            expected_entries=expected,
            fallback_triggered=fallback_triggered,
            tier_counts=dict(tier_counts),
        )

    def _match_anchors(
        self,
        document: ContentDocument,
        units: Sequence[ExtractedUnit],
        offset: int,
    ) -> bool:
        anchor_titles = self.toc.anchors_for(document.href) if document.href else {}
        if not anchor_titles:
            return False

        matched = False
        for position, unit in enumerate(units):
            for anchor in unit.anchors:
                title = anchor_titles.get(anchor)
                if title and self.context.is_new(title):
                    self._emit(title, offset + position, ResolutionTier.ANCHOR)
                    matched = True
                    # one chapter per paragraph
                    break

        return matched

    def _emit(self, title: str, start: int, tier: ResolutionTier) -> None:
        self.context.mark_seen(title)
        self.chapters.append(
            ResolvedChapter(index=len(self.chapters), title=title, start=start, tier=tier)
        )
        logger.debug("chapter_resolver.chapter", title=title, start=start, tier=tier.value)
