"""
Database Models
"""
from .catalog import CatalogEntry, ChartFamily, Platform, PRIMARY_FAMILIES
from .artist import (
    Artist,
    ArtistAlias,
    Label,
    LabelAlias,
    Track,
    ManualArtistLink,
    normalize_name,
)
from .chart import ChartEntry
from .scoring import ArtistMetrics, LeadScore
from .run import PipelineRun, RunKind, RunStatus
from .enrichment import ArtistEnrichment
