"""Output formatters for CLI results.

Provides two output formats:
- markdown: Human-readable markdown with scores and provenance
- json: Machine-parseable JSON (the same shape the HTTP API returns)
"""

import json
from typing import Optional

from oracle_kb_contracts import SearchOutcome, SearchResultItem

SNIPPET_CHARS = 500


def _score_detail(result: SearchResultItem) -> str:
    parts = [f"score: {result.score:.3f}", result.provenance.value]
    if result.lexical_score is not None:
        parts.append(f"fts: {result.lexical_score:.3f}")
    if result.semantic_score is not None:
        parts.append(f"vector: {result.semantic_score:.3f}")
    return ", ".join(parts)


def format_result_markdown(result: SearchResultItem, rank: int, show_content: bool = True) -> str:
    """Format a single search result as markdown.

    Args:
        result: Search result to format
        rank: 1-based position on the page
        show_content: Whether to include content snippet

    Returns:
        Markdown-formatted string
    """
    lines = [
        f"## {rank}. {result.id} ({_score_detail(result)})",
        f"**Type**: {result.type.value}",
        f"**Source**: {result.source_locator or 'unknown'}",
    ]
    if result.concepts:
        lines.append(f"**Concepts**: {', '.join(result.concepts)}")
    if result.project:
        lines.append(f"**Project**: {result.project}")

    if show_content and result.content:
        content = result.content[:SNIPPET_CHARS]
        if len(result.content) > SNIPPET_CHARS:
            content += "..."
        lines.append(f"\n> {content.replace(chr(10), chr(10) + '> ')}")

    return "\n".join(lines)


def format_outcome_markdown(outcome: SearchOutcome, query: str, show_content: bool = True) -> str:
    """Format a search outcome as markdown, warning first."""
    meta = outcome.metadata
    sections = []
    if meta.warning:
        sections.append(f"> **Warning**: {meta.warning}\n")

    if not outcome.results:
        sections.append(f"No results found for: **{query}**")
        return "\n".join(sections)

    first = meta.offset + 1
    last = meta.offset + len(outcome.results)
    sections.append(
        f'# Search Results for: "{query}"\n\n'
        f"Showing {first}-{last} of {outcome.total} ({meta.mode.value}, {meta.elapsed_ms} ms)\n"
    )
    formatted = [
        format_result_markdown(r, first + i, show_content) for i, r in enumerate(outcome.results)
    ]
    return "\n".join(sections) + "\n\n---\n\n".join(formatted)


def format_outcome_json(outcome: SearchOutcome, query: Optional[str] = None) -> str:
    output = outcome.model_dump(mode="json")
    if query is not None:
        output = {"query": query, **output}
    return json.dumps(output, indent=2, ensure_ascii=False)


def format_similar_markdown(doc_id: str, results: list[SearchResultItem], show_content: bool = True) -> str:
    if not results:
        return f"No similar documents found for: **{doc_id}**"
    header = f'# Documents similar to "{doc_id}"\n\n'
    formatted = [format_result_markdown(r, i + 1, show_content) for i, r in enumerate(results)]
    return header + "\n\n---\n\n".join(formatted)


def format_similar_json(doc_id: str, results: list[SearchResultItem]) -> str:
    output = {
        "doc_id": doc_id,
        "result_count": len(results),
        "results": [r.model_dump(mode="json") for r in results],
    }
    return json.dumps(output, indent=2, ensure_ascii=False)
