"""Article ingestion for feedlens.

Pipeline: **dedup -> embed -> index -> store**, orchestrated by
:class:`IngestionService`.  Batches run item by item; sources run
concurrently.
"""

from src.services.ingestion.ingestion_service import IngestionService

__all__ = ["IngestionService"]
