"""API routes package."""

from engine.routes.asset_routes import router as asset_router
from engine.routes.snapshot_routes import router as snapshot_router

__all__ = ["asset_router", "snapshot_router"]
