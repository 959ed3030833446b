"""
API Schemas (Pydantic models)
"""
from .pipeline import (
    PipelineRunRequest, DiscoveryRunRequest, IngestRunRequest,
    PipelineRunResponse, TaskQueuedResponse,
)
from .toptracker import (
    BackfillRequest, BackfillResponse, DailyUpdateRequest,
    PasteImportRequest, PasteImportResponse,
    ManualLinkRequest, ManualLinkResponse, GenreResponse,
)
from .leads import (
    LeadResponse, LeadListResponse, ArtistMetricsResponse, ChartEntryResponse,
    EnrichmentResponse, EnrichmentUpdate, ArtistDetailResponse,
    CatalogEntryResponse, OracleScanRequest, AddToLeadsRequest,
)
