# =============================================================================
# src/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command-line tools for operators working outside the HTTP API.
#
#   CORPUS (corpus.py)
#      Ingests raw articles from JSON-lines files, runs semantic and
#      "more like this" searches, and reports corpus/embedding status.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Components come from src.main.build_services, so the CLI uses the
#     same embedding chain, ChromaDB collection and SQLite database as
#     the web server.
# =============================================================================

"""CLI tools for feedlens.

- ``python -m src.cli ingest|search|similar|status``: manage and query
  the article corpus.
"""
