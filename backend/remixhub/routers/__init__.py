"""RemixHub Registry - API Routers"""
from .story import router as story_router
from .ipfs import router as ipfs_router
from .designs import router as designs_router
from .assets import router as assets_router

__all__ = [
    "story_router",
    "ipfs_router",
    "designs_router",
    "assets_router",
]
