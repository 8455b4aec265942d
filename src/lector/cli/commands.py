"""CLI commands for lector.

Commands:
- process: Convert an EPUB into the reader's paragraph/chapter JSON
- inspect: Validate an output JSON and show its chapters
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from lector.config.app_config import (
    ConfigError,
    load_app_config,
    load_app_config_from,
)
from lector.core.book_processor import BookProcessingError, process_epub
from lector.core.epub_reader import EpubReadError
from lector.utils.validators import validate_book_index

app = typer.Typer(
    name="lector",
    help="Convert EPUB books into a flat paragraph/chapter reading index.",
    no_args_is_help=True,
)

console = Console()


def _truncate(text: str, max_len: int = 70) -> str:
    """Truncate text for table display."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + "…"


@app.command()
def process(
    epub: str | None = typer.Argument(None, help="EPUB file (default: from config)"),
    output_dir: str | None = typer.Option(
        None, "--output-dir", "-o", help="Output directory (default: from config)"
    ),
    book_id: str | None = typer.Option(None, "--book-id", "-b", help="Output book id"),
    config_file: str | None = typer.Option(None, "--config", "-c", help="YAML config file"),
) -> None:
    """Process an EPUB and write {output_dir}/{book_id}.json."""
    try:
        config = load_app_config_from(Path(config_file)) if config_file else load_app_config()
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    epub_path = Path(epub).expanduser() if epub else Path(config.output.epub_path)
    console.print(f"[blue]Procesando {epub_path.name}...[/blue]")

    try:
        result = process_epub(
            epub_path=epub_path,
            output_dir=Path(output_dir).expanduser() if output_dir else None,
            book_id=book_id,
            config=config,
        )
    except FileNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except (EpubReadError, BookProcessingError) as e:
        console.print(f"[red]✗ Error de procesamiento: {e}[/red]")
        raise typer.Exit(code=1)

    metrics = result.metrics
    console.print(f"[green]✓ {result.message}[/green]")
    console.print(f"  [dim]book_id:[/dim]    {result.book.id}")
    console.print(f"  [dim]output:[/dim]     {result.output_path}")
    console.print(
        f"  [dim]chapters:[/dim]   {metrics.total_chapters} / {metrics.toc_entries} entradas TOC"
    )
    console.print(f"  [dim]paragraphs:[/dim] {metrics.total_paragraphs:,}")
    console.print(f"  [dim]words:[/dim]      {metrics.total_words:,}")
    if metrics.detected_language:
        console.print(f"  [dim]language:[/dim]   {metrics.detected_language}")
    if metrics.skipped_documents:
        console.print(f"  [dim]skipped:[/dim]    {metrics.skipped_documents} documentos sin texto")
    if metrics.fallback_triggered:
        console.print(
            "[yellow]⚠ Pocas coincidencias con el TOC - capítulos localizados por texto[/yellow]"
        )


@app.command()
def inspect(
    book_json: str = typer.Argument(..., help="Output JSON produced by 'process'"),
) -> None:
    """Validate an output JSON and list its chapters."""
    path = Path(book_json).expanduser()
    if not path.exists():
        console.print(f"[red]✗ Archivo no encontrado: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]✗ JSON inválido: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title=data.get("title", path.stem))
    table.add_column("#", justify="right")
    table.add_column("Título")
    table.add_column("Párrafo", justify="right")
    for chapter in data.get("chapters", []):
        table.add_row(
            str(chapter.get("index")),
            _truncate(str(chapter.get("title", ""))),
            str(chapter.get("startParagraphId")),
        )
    console.print(table)
    console.print(
        f"  [dim]paragraphs:[/dim] {len(data.get('paragraphs', [])):,}  "
        f"[dim]words:[/dim] {data.get('totalWords', 0):,}"
    )

    errors = validate_book_index(data)
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        raise typer.Exit(code=1)

    console.print("[green]✓ Índice válido[/green]")
