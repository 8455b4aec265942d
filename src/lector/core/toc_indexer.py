"""Table of contents indexing.

Responsibilities:
- Flatten the TOC tree into ordered entries
- Build lookup tables by document path, by (document, anchor) and by
  internal id, all keyed by normalized forms
- Keep the declared (original) titles as values
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Union

import structlog

from lector.core.text_normalizer import (
    normalize_path,
    normalize_whitespace,
    path_filename,
    split_href,
)

logger = structlog.get_logger(__name__)


@dataclass
class TocNode:
    """Raw TOC node as read from the container."""

    title: str
    href: str | None = None
    uid: str | None = None
    children: list[TocNode] = field(default_factory=list)


@dataclass(frozen=True)
class AnchorTarget:
    """Entry pointing at a position inside a document."""

    file: str
    anchor: str


@dataclass(frozen=True)
class DocumentTarget:
    """Entry pointing at the start of a document."""

    file: str


@dataclass(frozen=True)
class IdTarget:
    """Entry known only by an internal identifier."""

    uid: str


TocTarget = Union[AnchorTarget, DocumentTarget, IdTarget]


@dataclass(frozen=True)
class TocEntry:
    """Flattened TOC entry. ``target`` is None for title-only entries."""

    title: str
    order: int
    target: TocTarget | None = None

    @property
    def file(self) -> str:
        if isinstance(self.target, (AnchorTarget, DocumentTarget)):
            return self.target.file
        return ""

    @property
    def anchor(self) -> str | None:
        if isinstance(self.target, AnchorTarget):
            return self.target.anchor
        return None


@dataclass(frozen=True)
class TocIndex:
    """Read-only lookup tables built once per run."""

    entries: tuple[TocEntry, ...]
    by_path: Mapping[str, str]
    by_anchor: Mapping[str, Mapping[str, str]]
    by_id: Mapping[str, str]

    def anchors_for(self, href: str) -> Mapping[str, str]:
        """Anchor -> title map of a document (by path, then by file name)."""
        path = normalize_path(href)
        anchors = self.by_anchor.get(path)
        if anchors is None:
            anchors = self.by_anchor.get(path_filename(path), {})
        return anchors

    def title_for_path(self, href: str) -> str | None:
        """Document-level chapter title (by path, then by file name)."""
        path = normalize_path(href)
        title = self.by_path.get(path)
        if title is None:
            title = self.by_path.get(path_filename(path))
        return title

    def title_for_id(self, uid: str) -> str | None:
        return self.by_id.get(uid)


def _target_for(node: TocNode) -> TocTarget | None:
    href = (node.href or "").strip()
    if href:
        path, anchor = split_href(href)
        if path and anchor:
            return AnchorTarget(file=path, anchor=anchor)
        if path:
            return DocumentTarget(file=path)
    uid = (node.uid or "").strip()
    if uid:
        return IdTarget(uid=uid)
    return None


def flatten_toc(nodes: list[TocNode]) -> list[TocEntry]:
    """Flatten the TOC tree depth-first, dropping untitled entries.

    Args:
        nodes: Top-level TOC nodes

    Returns:
        TocEntry list in declaration order
    """
    entries: list[TocEntry] = []

    def visit(node: TocNode) -> None:
        title = normalize_whitespace(node.title or "")
        if title:
            entries.append(TocEntry(title=title, order=len(entries), target=_target_for(node)))
        else:
            logger.debug("toc_indexer.untitled_entry_skipped", href=node.href, uid=node.uid)
        for child in node.children:
            visit(child)

    for node in nodes:
        visit(node)

    return entries


def build_toc_index(nodes: list[TocNode]) -> TocIndex:
    """Build the lookup tables used by the chapter resolver.

    Documents are indexed under both their normalized path and their bare
    file name. The first declaration of a key wins.

    Args:
        nodes: Top-level TOC nodes

    Returns:
        TocIndex with all entries and lookup tables
    """
    entries = flatten_toc(nodes)

    by_path: dict[str, str] = {}
    by_anchor: dict[str, dict[str, str]] = {}
    by_id: dict[str, str] = {}

    for entry in entries:
        target = entry.target
        if isinstance(target, AnchorTarget):
            for key in dict.fromkeys((target.file, path_filename(target.file))):
                by_anchor.setdefault(key, {}).setdefault(target.anchor, entry.title)
        elif isinstance(target, DocumentTarget):
            for key in dict.fromkeys((target.file, path_filename(target.file))):
                by_path.setdefault(key, entry.title)
        elif isinstance(target, IdTarget):
            by_id.setdefault(target.uid, entry.title)

    logger.debug(
        "toc_indexer.built",
        entries=len(entries),
        paths=len(by_path),
        anchored_documents=len(by_anchor),
        ids=len(by_id),
    )

    return TocIndex(
        entries=tuple(entries),
        by_path=MappingProxyType(by_path),
        by_anchor=MappingProxyType(
            {key: MappingProxyType(value) for key, value in by_anchor.items()}
        ),
        by_id=MappingProxyType(by_id),
    )
