"""Tweet Archive - Services"""

from .ingest_service import IngestResult, IngestService
from .search import SearchEngine, SearchResult

__all__ = ["IngestResult", "IngestService", "SearchEngine", "SearchResult"]
