"""
HTTP route handlers, one APIRouter per area
"""

from .health_routes import router as health_router
from .photo_routes import router as photo_router
from .storage_routes import router as storage_router
from .database_routes import router as database_router
from .journal_routes import router as journal_router
from .stats_routes import router as stats_router

ALL_ROUTERS = [
    health_router,
    photo_router,
    storage_router,
    database_router,
    journal_router,
    stats_router,
]

__all__ = ['ALL_ROUTERS']
