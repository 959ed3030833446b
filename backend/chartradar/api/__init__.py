"""
API routers
"""
from .health import router as health_router
from .pipeline import router as pipeline_router
from .toptracker import router as toptracker_router
from .oracle import router as oracle_router
from .leads import router as leads_router
from .artists import router as artists_router
from .catalog import router as catalog_router
