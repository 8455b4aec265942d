"""lector: EPUB to paragraph/chapter reading index."""

__version__ = "0.1.0"
