"""Core extraction pipeline.

Modules:
- text_normalizer: Whitespace, comparison keys, paths, tokenization
- epub_reader: EPUB container access (spine, TOC, metadata)
- content_extractor: Paragraph units and anchors from XHTML
- toc_indexer: TOC lookup tables
- chapter_resolver: Anchor/document/fuzzy chapter resolution
- book_assembler: Global paragraph/chapter index and JSON output
- book_processor: Batch orchestrator
- reading: Reader-side helpers over the output record
"""

__all__ = [
    "text_normalizer",
    "epub_reader",
    "content_extractor",
    "toc_indexer",
    "chapter_resolver",
    "book_assembler",
    "book_processor",
    "reading",
]
