"""Oracle KB CLI - Main entry point.

Provides the `oracle-kb` command-line interface.

Usage:
    oracle-kb search "nothing is deleted" --type principle --limit 5
    oracle-kb similar learning_force_push --format json
    oracle-kb add my_learning --type learning --file notes.md
    oracle-kb status
"""

import asyncio
import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import typer

from oracle_kb_common import OracleKBError, VectorStoreError, configure_logging, get_settings
from oracle_kb_contracts import Document, SearchOutcome, SearchResultItem
from oracle_kb_storage import SearchContext, find_similar, hybrid_search

from oracle_kb_cli.formatters import (
    format_outcome_json,
    format_outcome_markdown,
    format_similar_json,
    format_similar_markdown,
)


class OutputFormat(str, Enum):
    """Output format options."""

    markdown = "markdown"
    json = "json"


class TypeOption(str, Enum):
    """Type filter accepted by search."""

    all = "all"
    principle = "principle"
    pattern = "pattern"
    learning = "learning"
    retro = "retro"


class DocTypeOption(str, Enum):
    """Type given to a document on add."""

    principle = "principle"
    pattern = "pattern"
    learning = "learning"
    retro = "retro"


class ModeOption(str, Enum):
    hybrid = "hybrid"
    fts = "fts"
    vector = "vector"


# Create the Typer app
app = typer.Typer(
    name="oracle-kb",
    help="Search the oracle knowledge base by keywords and meaning.",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Configure logging before any command runs."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, json_output=settings.log_format == "json")


async def run_search(
    query_text: str,
    type_filter: str,
    limit: int,
    offset: int,
    mode: str,
) -> SearchOutcome:
    """Open a context, run one search and close the context again."""
    ctx = await SearchContext.open()
    try:
        return await hybrid_search(
            ctx, query_text, type_filter=type_filter, limit=limit, offset=offset, mode=mode
        )
    finally:
        await ctx.close()


async def run_similar(doc_id: str, limit: int) -> list[SearchResultItem]:
    ctx = await SearchContext.open()
    try:
        return await find_similar(ctx, doc_id, limit)
    finally:
        await ctx.close()


async def run_add(document: Document, created_by: Optional[str]) -> Optional[str]:
    """Write a document to the store and the Chroma collection.

    Returns:
        None on success, or a warning when only the keyword index was written
    """
    ctx = await SearchContext.open()
    try:
        await ctx.store.upsert(document, created_by=created_by)

        metadata: dict[str, Any] = {
            "type": document.type.value,
            "source_file": document.source_locator,
            "concepts": json.dumps(sorted(document.concepts)),
        }
        if document.project:
            metadata["project"] = document.project.lower()

        try:
            await ctx.collection.ensure_collection()
            await ctx.collection.add_documents([document.id], [document.content], [metadata])
        except VectorStoreError as e:
            return f"Vector index not updated: {e}. Document is searchable by keywords only."
        return None
    finally:
        await ctx.close()


async def run_status() -> dict[str, Any]:
    ctx = await SearchContext.open()
    try:
        return await ctx.stats()
    finally:
        await ctx.close()


@app.command()
def search(
    query_text: str = typer.Argument(..., help="The query to search for"),
    type_filter: TypeOption = typer.Option(TypeOption.all, "--type", "-t", help="Filter by document type"),
    limit: int = typer.Option(5, "--limit", "-l", min=1, max=100, help="Maximum number of results"),
    offset: int = typer.Option(0, "--offset", min=0, help="Results to skip"),
    mode: ModeOption = typer.Option(ModeOption.hybrid, "--mode", "-m", help="hybrid, fts or vector"),
    format: OutputFormat = typer.Option(
        OutputFormat.markdown, "--format", "-f", help="Output format"
    ),
    no_content: bool = typer.Option(
        False, "--no-content", help="Omit content snippets"
    ),
):
    """Search documents by keywords and meaning.

    Examples:

        oracle-kb search "nothing is deleted"

        oracle-kb search "force push" --type learning --mode fts
    """
    try:
        outcome = asyncio.run(
            run_search(query_text, type_filter.value, limit, offset, mode.value)
        )
    except ValueError as e:
        typer.echo(f"Invalid search: {e}", err=True)
        raise typer.Exit(2)
    except OracleKBError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if format == OutputFormat.json:
        typer.echo(format_outcome_json(outcome, query_text))
    else:
        typer.echo(format_outcome_markdown(outcome, query_text, show_content=not no_content))


@app.command()
def similar(
    doc_id: str = typer.Argument(..., help="Id of a stored document"),
    limit: int = typer.Option(5, "--limit", "-l", min=1, max=100, help="Maximum number of neighbours"),
    format: OutputFormat = typer.Option(
        OutputFormat.markdown, "--format", "-f", help="Output format"
    ),
):
    """Find documents whose meaning is closest to a stored document."""
    try:
        results = asyncio.run(run_similar(doc_id, limit))
    except LookupError as e:
        typer.echo(f"Not found: {e}", err=True)
        raise typer.Exit(1)
    except OracleKBError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if format == OutputFormat.json:
        typer.echo(format_similar_json(doc_id, results))
    else:
        typer.echo(format_similar_markdown(doc_id, results))


@app.command()
def add(
    doc_id: str = typer.Argument(..., help="Document id"),
    doc_type: DocTypeOption = typer.Option(DocTypeOption.learning, "--type", "-t", help="Document type"),
    file: Optional[Path] = typer.Option(
        None, "--file", exists=True, dir_okay=False, readable=True, help="Read content from a file"
    ),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="Document content"),
    source: Optional[str] = typer.Option(None, "--source", help="Source locator (defaults to --file)"),
    concepts: Optional[list[str]] = typer.Option(None, "--concept", help="Concept tag (repeatable)"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Owning project"),
    created_by: Optional[str] = typer.Option(None, "--created-by", help="Author recorded with the document"),
):
    """Add or replace a document in the keyword store and the vector collection."""
    if (file is None) == (content is None):
        typer.echo("Error: provide exactly one of --file or --content", err=True)
        raise typer.Exit(2)

    text = file.read_text(encoding="utf-8") if file is not None else content
    document = Document(
        id=doc_id,
        type=doc_type.value,
        content=text,
        source_locator=source or (str(file) if file is not None else ""),
        concepts=concepts or [],
        project=project,
    )

    try:
        warning = asyncio.run(run_add(document, created_by))
    except OracleKBError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if warning:
        typer.echo(f"Warning: {warning}", err=True)
    typer.echo(f"Added {doc_id} ({doc_type.value})")


@app.command()
def status():
    """Show document counts and backend health."""
    try:
        stats = asyncio.run(run_status())
    except OracleKBError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Oracle KB Status")
    typer.echo("=" * 40)
    typer.echo(f"Database:       {stats['database']}")
    typer.echo(f"Documents:      {stats['documents']}")
    typer.echo(f"Chroma:         {stats['chroma_status']} ({stats['chroma_state']})")
    typer.echo(f"Collection:     {stats['collection']}")
    typer.echo(f"Vector entries: {stats['vector_count']}")
    if stats["by_type"]:
        typer.echo()
        typer.echo("By type:")
        for doc_type, count in sorted(stats["by_type"].items()):
            typer.echo(f"  {doc_type:12} {count:5}")


if __name__ == "__main__":
    app()
