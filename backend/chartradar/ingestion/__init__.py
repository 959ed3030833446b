"""
Ingestion: fetcher, gated-source sessions, discovery, catalog-driven
ingestion, Top Tracker backfill and the Songstats secondary source
"""
from .fetcher import Fetcher
from .session import SessionStore, SessionState
from .discovery import DiscoveryService, DiscoveryResult
from .engine import IngestionEngine, IngestResult
from .backfill import BackfillEngine, BackfillResult, PasteImportResult
