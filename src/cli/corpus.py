# =============================================================================
# src/cli/corpus.py: Article corpus CLI
# =============================================================================
#
# Manage and query the feedlens article corpus from the shell, using the
# same embedding chain, ChromaDB collection and SQLite database as the web
# server (components come from src.main.build_services).
#
# Subcommands:
#
#   ingest   : Ingest raw articles from a JSON-lines file (one article per line)
#   search   : Semantic search by free text
#   similar  : Articles similar to a stored document
#   status   : Document/vector counts and the embedding chain
#
# Usage examples:
#   python -m src.cli ingest feeds/2024-06-01.jsonl
#   python -m src.cli search "ECB raises interest rates" --limit 5
#   python -m src.cli similar 6f1c0c1e-... --min-similarity 0.7
#   python -m src.cli status
# =============================================================================

"""Command-line interface for the feedlens article corpus.

Usage::

    python -m src.cli ingest articles.jsonl
    python -m src.cli search "climate summit" --limit 5
    python -m src.cli similar <document_id>
    python -m src.cli status
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.models.article import RawArticle, SearchFilter, SearchResult
from src.utils.errors import FeedLensError


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------


def read_articles(path: Path) -> tuple[list[RawArticle], list[str]]:
    """Parse a JSON-lines file into raw articles.

    Blank lines are skipped.  Malformed lines are reported, not fatal.

    Returns
    -------
    tuple[list[RawArticle], list[str]]
        The parsed articles and one error message per rejected line.
    """
    articles: list[RawArticle] = []
    errors: list[str] = []
    with open(path, encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                articles.append(RawArticle.model_validate(json.loads(line)))
            except (json.JSONDecodeError, ValidationError) as exc:
                errors.append(f"line {line_no}: {exc}")
    return articles, errors


def group_by_source(articles: list[RawArticle]) -> dict[str, list[RawArticle]]:
    """Group articles by ``source_id``, preserving file order within a source."""
    grouped: dict[str, list[RawArticle]] = defaultdict(list)
    for article in articles:
        grouped[article.source_id].append(article)
    return dict(grouped)


def _build_filter(args: argparse.Namespace, app_settings: Any) -> SearchFilter:
    limit = args.limit if args.limit is not None else app_settings.search_default_max_results
    min_similarity = (
        args.min_similarity
        if args.min_similarity is not None
        else app_settings.search_default_min_similarity
    )
    return SearchFilter(
        date_from=getattr(args, "date_from", None),
        date_to=getattr(args, "date_to", None),
        source_id=getattr(args, "source", None),
        category=getattr(args, "category", None),
        min_similarity=min_similarity,
        max_results=min(limit, app_settings.search_max_results_cap),
    )


def _print_results(results: list[SearchResult]) -> None:
    if not results:
        print("No matching articles.")
        return
    for rank, result in enumerate(results, start=1):
        doc = result.document
        print(f"{rank:>2}. [{result.score:.4f}] {doc.title}")
        print(f"    {doc.source_id} | {doc.published_at:%Y-%m-%d} | {doc.document_id}")
        if doc.link:
            print(f"    {doc.link}")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, services: dict[str, Any]) -> int:
    path = Path(args.file)
    if not path.exists():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    articles, parse_errors = read_articles(path)
    for message in parse_errors:
        print(f"  Skipped {message}", file=sys.stderr)
    if not articles:
        print("No articles to ingest.")
        return 1 if parse_errors else 0

    batches = group_by_source(articles)
    print(f"Ingesting {len(articles)} articles from {len(batches)} sources: {path}")
    stats = await services["ingestion_service"].ingest_sources(batches)

    print("\nIngestion complete:")
    print(f"  New articles:      {stats.new_items}")
    print(f"  Duplicates:        {stats.duplicates}")
    print(f"  Errors:            {stats.errors + len(parse_errors)}")
    print(f"  Vectors generated: {stats.vectors_generated}")
    print(f"  Without vector:    {stats.embedding_failures}")
    return 0 if stats.errors == 0 else 2


async def _handle_search(args: argparse.Namespace, services: dict[str, Any]) -> int:
    search_filter = _build_filter(args, services["settings"])
    results = await services["search_engine"].search_by_text(args.query, search_filter)
    _print_results(results)
    return 0


async def _handle_similar(args: argparse.Namespace, services: dict[str, Any]) -> int:
    search_filter = _build_filter(args, services["settings"])
    results = await services["search_engine"].search_similar_to(args.document_id, search_filter)
    _print_results(results)
    return 0


async def _handle_status(services: dict[str, Any]) -> int:
    embedding_service = services["embedding_service"]
    document_count = await services["document_store"].count()
    try:
        vector_count: int | str = await services["vector_store"].count()
    except FeedLensError as exc:
        vector_count = f"unavailable ({exc.message})"

    print("Corpus Status")
    print("=" * 40)
    print(f"  Documents:        {document_count}")
    print(f"  Indexed vectors:  {vector_count}")
    print(f"  Embedding chain:  {' -> '.join(embedding_service.get_chain())}")
    print(f"  Dimension:        {embedding_service.get_dimension()}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _add_search_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--limit", type=_positive_int, default=None, help="Maximum results (capped at 20)"
    )
    parser.add_argument(
        "--min-similarity",
        type=float,
        default=None,
        dest="min_similarity",
        help="Minimum similarity score in [0, 1]",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the corpus CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Ingest and search the feedlens article corpus.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest articles from a JSON-lines file")
    ingest_parser.add_argument("file", help="Path to the .jsonl file")

    search_parser = subparsers.add_parser("search", help="Semantic search by text")
    search_parser.add_argument("query", help="Free-text query")
    _add_search_options(search_parser)
    search_parser.add_argument("--source", default=None, help="Only this source id")
    search_parser.add_argument("--category", default=None, help="Only this category")
    search_parser.add_argument(
        "--date-from",
        type=datetime.fromisoformat,
        default=None,
        dest="date_from",
        help="Earliest publication date (ISO 8601)",
    )
    search_parser.add_argument(
        "--date-to",
        type=datetime.fromisoformat,
        default=None,
        dest="date_to",
        help="Latest publication date (ISO 8601)",
    )

    similar_parser = subparsers.add_parser("similar", help="Articles similar to a stored one")
    similar_parser.add_argument("document_id", help="Stored document id")
    _add_search_options(similar_parser)

    subparsers.add_parser("status", help="Show corpus counts and the embedding chain")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace) -> int:
    # Deferred: importing src.main configures logging and reads config.
    from src.main import build_services

    services = await build_services()
    try:
        if args.command == "ingest":
            return await _handle_ingest(args, services)
        if args.command == "search":
            return await _handle_search(args, services)
        if args.command == "similar":
            return await _handle_similar(args, services)
        return await _handle_status(services)
    except FeedLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand and dispatch to its handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
