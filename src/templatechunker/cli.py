"""Command line interface for templatechunker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import click
import typer
from rich.console import Console
from rich.table import Table

from templatechunker.chunking.engine import ChunkingEngine
from templatechunker.config import MIN_CHUNK_SIZE_FLOOR, AppConfig, ChunkingConfig
from templatechunker.embedding.encoder import EmbeddingConfig, EmbeddingModel
from templatechunker.index.indexer import ChunkIndexer
from templatechunker.index.search import Searcher, calculate_confidence
from templatechunker.index.storage import SQLiteVectorStore
from templatechunker.models import ChunkStatistics
from templatechunker.utils.files import compute_sha256, load_template, write_json


console = Console()
app = typer.Typer(
    help="templatechunker - split large JSON templates into indexed chunks",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(code=1)


def _print_statistics(stats: ChunkStatistics) -> None:
    table = Table(title="Statistics", show_header=False)
    table.add_row("Total chunks", str(stats.total_chunks))
    table.add_row("Avg lines per chunk", str(stats.avg_lines_per_chunk))
    table.add_row("Min lines", str(stats.min_lines))
    table.add_row("Max lines", str(stats.max_lines))
    table.add_row("Total sections", str(stats.total_sections))
    table.add_row("Total fields", str(stats.total_fields))
    console.print(table)


@app.command()
def chunk(
    input_path: Optional[Path] = typer.Option(None, "--input", "-i", help="Input template JSON file"),
    output_path: Optional[Path] = typer.Option(None, "--output", "-o", help="Output chunked JSON file"),
    chunk_size: int = typer.Option(
        AppConfig().max_chunk_size, "--chunk-size", help="Maximum chunk size in lines"
    ),
    min_chunk_size: int = typer.Option(
        AppConfig().min_chunk_size, "--min-chunk-size", help="Minimum chunk size in lines"
    ),
    overlap: int = typer.Option(
        AppConfig().overlap_size, "--overlap", help="Overlap size for context"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Split a template into chunks and write the result as JSON."""
    _setup_logging(verbose)
    if input_path is None:
        _fail("Input file is required (use --input or -i)")
    if output_path is None:
        _fail("Output file is required (use --output or -o)")
    if not input_path.is_file():
        _fail(f"Input file not found: {input_path}")
    if chunk_size < MIN_CHUNK_SIZE_FLOOR:
        _fail(f"Chunk size must be at least {MIN_CHUNK_SIZE_FLOOR} lines")

    try:
        engine = ChunkingEngine(
            ChunkingConfig(
                max_chunk_size=chunk_size,
                min_chunk_size=min_chunk_size,
                overlap_size=overlap,
            )
        )
        console.print(f"Reading template [bold]{input_path}[/bold]...")
        template = load_template(input_path)
        chunked = engine.chunk_template(template)
        if overlap > 0:
            engine.add_overlap(chunked.chunks)
        stats = engine.get_statistics(chunked.chunks)
        write_json(output_path, chunked.to_dict())
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        _fail(str(exc))

    _print_statistics(stats)
    console.print(f"Saved to [bold]{output_path}[/bold]")
    for item in chunked.chunks:
        console.print(f"  {item.id}: {item.title} (lines {item.start_line}-{item.end_line})")


@app.command()
def index(
    template_path: Path = typer.Argument(..., help="Template JSON file to index.", resolve_path=True),
    template_id: Optional[str] = typer.Option(
        None, "--template-id", help="Identifier stored with the chunks (default: template id or file stem)"
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(AppConfig().model_name, help="Sentence-transformer model name"),
    chunk_size: int = typer.Option(
        AppConfig().max_chunk_size, "--chunk-size", help="Maximum chunk size in lines"
    ),
    overlap: int = typer.Option(AppConfig().overlap_size, "--overlap", help="Overlap size for context"),
    batch_size: int = typer.Option(AppConfig().batch_size, "--batch-size", help="Chunks per embedding batch"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Chunk a template and store its embeddings for search."""
    _setup_logging(verbose)
    if not template_path.is_file():
        _fail(f"Input file not found: {template_path}")

    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        model_name=model,
        max_chunk_size=chunk_size,
        overlap_size=overlap,
        batch_size=batch_size,
    )
    try:
        engine = ChunkingEngine(config.chunking())
        template = load_template(template_path)
        chunked = engine.chunk_template(template)
        if config.overlap_size > 0:
            engine.add_overlap(chunked.chunks)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
        _fail(str(exc))

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension, collection=config.collection)
    indexer = ChunkIndexer(embedder, store, batch_size=config.batch_size)

    resolved_id = template_id or str(template.get("id") or template_path.stem)
    console.print(f"Indexing [bold]{resolved_id}[/bold] into [bold]{resolved_db}[/bold]...")
    try:
        result = indexer.index_chunks(
            chunked.chunks, resolved_id, fingerprint=compute_sha256(template_path)
        )
    finally:
        store.close()
    console.print(f"Indexed: {result.indexed} chunks ({result.status})")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    model: str = typer.Option(AppConfig().model_name, help="Sentence-transformer model name"),
    top_k: int = typer.Option(3, help="Number of results to display"),
    template_id: Optional[str] = typer.Option(None, "--template-id", help="Restrict to one template"),
    tag: Optional[str] = typer.Option(None, "--tag", help="Restrict to chunks carrying this tag"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search over indexed chunks."""
    _setup_logging(verbose)
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path, model_name=model)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
    store = SQLiteVectorStore(resolved_db, dimension=embedder.dimension, collection=config.collection)
    searcher = Searcher(embedder, store)

    try:
        results = searcher.search(query, top_k=top_k, template_id=template_id, tag=tag)
    finally:
        store.close()
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Relevance")
    table.add_column("Chunk")
    table.add_column("Title")
    table.add_column("Snippet")

    for result in results:
        snippet = result.content.replace("\n", " ")
        table.add_row(f"{result.relevance:.4f}", result.id, result.title, snippet[:180])

    console.print(table)
    console.print(f"Confidence: {calculate_confidence(results):.2f}")


@app.command()
def delete(
    template_id: str = typer.Argument(..., help="Template whose chunks should be removed"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove a template's chunks from the index."""
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())

    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to delete.[/yellow]")
        return

    store = SQLiteVectorStore(resolved_db, collection=config.collection)
    try:
        ids = store.get(where={"templateId": template_id})
        removed = store.delete(ids)
    finally:
        store.close()
    console.print(f"Deleted {removed} chunks of template {template_id}.")


def main() -> None:
    """Console entry point; usage errors exit with code 1 like any other failure."""
    try:
        exit_code = app(standalone_mode=False)
    except click.exceptions.UsageError as exc:
        console.print(f"[red]Error: {exc.format_message()}[/red]")
        raise SystemExit(1) from exc
    if exit_code:
        raise SystemExit(exit_code)
