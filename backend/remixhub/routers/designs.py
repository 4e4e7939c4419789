"""
RemixHub Registry - Designs API Router

Registry browsing: event-driven listing, detail, derivative lineage.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..config import Settings
from ..dependencies import get_cache, get_event_scanner, get_pinning, get_settings
from ..errors import RegistryError, http_error
from ..services.external import EventScanner, PinataClient
from ..services.flows import DesignCatalog
from ..services.registry import RegistrationCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/designs", tags=["designs"])


def get_catalog(
    cache: RegistrationCache = Depends(get_cache),
    scanner: EventScanner = Depends(get_event_scanner),
    pinning: PinataClient = Depends(get_pinning),
    settings: Settings = Depends(get_settings),
) -> DesignCatalog:
    return DesignCatalog(
        cache,
        scanner,
        pinning,
        chunk_size=settings.batch_lookup_limit,
        lineage_max_depth=settings.lineage_max_depth,
    )


@router.get("")
def list_designs(
    owner: Optional[str] = Query(default=None, description="Only designs registered by this wallet"),
    metadata: bool = Query(default=True, description="Fetch metadata documents from the gateway"),
    catalog: DesignCatalog = Depends(get_catalog),
):
    """List registered originals, newest first."""
    try:
        designs = catalog.list_designs(owner=owner, with_metadata=metadata)
    except RegistryError as e:
        logger.error(f"[/designs] error: {e}")
        raise http_error(e)
    return {"success": True, "total": len(designs), "designs": [d.to_dict() for d in designs]}


@router.get("/{cid}")
def get_design(cid: str, catalog: DesignCatalog = Depends(get_catalog)):
    """Cached registration and metadata for one design."""
    try:
        design = catalog.get_design(cid)
    except RegistryError as e:
        raise http_error(e)
    return {"success": True, **design}


@router.get("/{cid}/lineage")
def get_lineage(cid: str, catalog: DesignCatalog = Depends(get_catalog)):
    """Remix chain from this design up to its root original."""
    try:
        chain = catalog.lineage(cid)
    except RegistryError as e:
        raise http_error(e)
    return {"success": True, "depth": len(chain) - 1, "lineage": chain}
