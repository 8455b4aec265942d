"""Application configuration loader.

Loads configuration from data/config/lector_config_v1.yaml merged over the
built-in defaults.

Usage:
    from lector.config.app_config import load_app_config

    config = load_app_config()
    config.extraction.fuzzy_length_window
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/lector_config_v1.yaml")

DEFAULT_IGNORED_HEADINGS = [
    # en
    "table of contents",
    "contents",
    "toc",
    "copyright",
    "cover",
    "title page",
    # es
    "índice",
    "índice general",
    "contenido",
    "contenidos",
    "sumario",
    "derechos de autor",
    "créditos",
    "portada",
    "cubierta",
    "portadilla",
    "página de título",
    "página de créditos",
    # fr / de / it / pt
    "table des matières",
    "sommaire",
    "couverture",
    "inhalt",
    "inhaltsverzeichnis",
    "titelseite",
    "indice dei contenuti",
    "copertina",
    "sumário",
    "capa",
]

DEFAULT_CHAPTER_WORDS = [
    "chapter",
    "capítulo",
    "cap.",
    "chapitre",
    "kapitel",
    "capitolo",
]


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""

    def __init__(self, path: Path, detail: str = ""):
        self.path = path
        msg = f"Configuración inválida: {path}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


@dataclass
class ExtractionConfig:
    """Heuristics of the extraction and chapter resolution engine.

    ``fuzzy_length_window`` and ``fallback_ratio`` are tuning knobs, not
    derived values.
    """

    min_paragraph_chars: int = 2
    fuzzy_length_window: int = 15
    fallback_ratio: float = 0.5
    min_toc_entries_for_fallback: int = 3
    whole_book_title: str = "Libro completo"
    ignored_headings: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_HEADINGS))
    chapter_words: list[str] = field(default_factory=lambda: list(DEFAULT_CHAPTER_WORDS))


@dataclass
class OutputConfig:
    """Where the batch reads from and writes to."""

    epub_path: str = "book.epub"
    output_dir: str = "public/books"
    book_id: str | None = None
    paragraph_id_base: int = 0


@dataclass
class AppConfig:
    """Application-wide configuration."""

    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = ExtractionConfig()
    ext = data.get("extraction") or {}
    extraction = ExtractionConfig(
        min_paragraph_chars=int(ext.get("min_paragraph_chars", defaults.min_paragraph_chars)),
        fuzzy_length_window=int(ext.get("fuzzy_length_window", defaults.fuzzy_length_window)),
        fallback_ratio=float(ext.get("fallback_ratio", defaults.fallback_ratio)),
        min_toc_entries_for_fallback=int(
            ext.get("min_toc_entries_for_fallback", defaults.min_toc_entries_for_fallback)
        ),
        whole_book_title=ext.get("whole_book_title", defaults.whole_book_title),
        ignored_headings=list(ext.get("ignored_headings", defaults.ignored_headings)),
        chapter_words=list(ext.get("chapter_words", defaults.chapter_words)),
    )

    out = data.get("output") or {}
    output_defaults = OutputConfig()
    paragraph_id_base = int(out.get("paragraph_id_base", output_defaults.paragraph_id_base))
    if paragraph_id_base not in (0, 1):
        raise ValueError(f"paragraph_id_base debe ser 0 o 1 (recibido: {paragraph_id_base})")
    output = OutputConfig(
        epub_path=out.get("epub_path", output_defaults.epub_path),
        output_dir=out.get("output_dir", output_defaults.output_dir),
        book_id=out.get("book_id"),
        paragraph_id_base=paragraph_id_base,
    )

    return AppConfig(extraction=extraction, output=output)


def load_app_config_from(path: Path) -> AppConfig:
    """Load configuration from an explicit YAML file.

    Args:
        path: YAML file path

    Returns:
        AppConfig with file values over defaults

    Raises:
        ConfigError: If the file is missing or malformed
    """
    if not path.exists():
        raise ConfigError(path, "no existe")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(path, str(e)) from e

    if not isinstance(data, dict):
        raise ConfigError(path, "se esperaba un mapa YAML")

    try:
        return _parse_config(data)
    except (TypeError, ValueError) as e:
        raise ConfigError(path, str(e)) from e


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        _cached_config = load_app_config_from(CONFIG_FILE)
    else:
        logger.info("using_default_config")
        _cached_config = AppConfig()

    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
