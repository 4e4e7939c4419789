"""
RemixHub Registry - Story API Router

Anchoring, batch lookup, and the register/publish/remix flows.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings
from ..dependencies import (
    get_anchor_writer,
    get_batch_lookup,
    get_ledger,
    get_parent_resolver,
    get_pinning,
    get_settings,
)
from ..errors import RegistryError, http_error
from ..models.registry import RegistrationResult
from ..services.external import LedgerClient, PinataClient
from ..services.flows import PublishFlow, RemixFlow
from ..services.registry import AnchorWriter, BatchLookup, ParentResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/story", tags=["story"])


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class AnchorRequest(BaseModel):
    """Result of an external registration event. Only cid is required."""
    model_config = ConfigDict(populate_by_name=True)

    cid: Optional[str] = None
    ip_id: Optional[Union[str, int]] = Field(default=None, alias="ipId")
    cid_hash: Optional[str] = Field(default=None, alias="cidHash")
    anchor_tx_hash: Optional[str] = Field(default=None, alias="anchorTxHash")
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    title: Optional[str] = None


class BatchLookupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Validated by BatchLookup so malformed input is a 400, not a 422
    cid_hashes: Any = Field(default=None, alias="cidHashes")


class RegisterRequest(BaseModel):
    cid: Optional[str] = None
    title: Optional[str] = None


class RemixRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_cid: Optional[str] = Field(default=None, alias="originalCid")
    remix_cid: Optional[str] = Field(default=None, alias="remixCid")
    title: Optional[str] = None


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    cid: str
    cid_hash: str = Field(alias="cidHash")
    ip_id: str = Field(alias="ipId")
    tx_hash: str = Field(alias="txHash")
    parent_ip_id: Optional[str] = Field(default=None, alias="parentIpId")
    explorer: Optional[str] = None
    cache_consistent: bool = Field(default=True, alias="cacheConsistent")
    warnings: List[Dict[str, Any]] = []


def _registration_response(result: RegistrationResult, settings: Settings) -> RegistrationResponse:
    return RegistrationResponse(
        cid=result.cid,
        cid_hash=result.cid_hash,
        ip_id=result.ip_id,
        tx_hash=result.tx_hash,
        parent_ip_id=result.parent_ip_id,
        explorer=f"{settings.explorer_url.rstrip('/')}/ip/{result.ip_id}",
        cache_consistent=result.cache_consistent,
        warnings=result.warnings,
    )


# =============================================================================
# CACHE ENDPOINTS
# =============================================================================

@router.post("/anchor")
async def anchor_registration(
    request: AnchorRequest,
    writer: AnchorWriter = Depends(get_anchor_writer),
):
    """
    Persist what is known about a registration.

    Safe to call repeatedly with partial information: fields are merged,
    never cleared, and anchorConfirmedAt is set only by the first call
    that carries an anchorTxHash.
    """
    try:
        record = writer.anchor(
            request.cid,
            ip_id=request.ip_id,
            cid_hash=request.cid_hash,
            anchor_tx_hash=request.anchor_tx_hash,
            tx_hash=request.tx_hash,
            title=request.title,
        )
    except RegistryError as e:
        logger.error(f"Anchor persist error: {e}")
        raise http_error(e)

    return {"success": True, "record": record.to_dict()}


@router.post("/lookup/batch")
async def batch_lookup(
    request: BatchLookupRequest,
    lookup: BatchLookup = Depends(get_batch_lookup),
):
    """
    Resolve cid hashes from ledger events to cached {cid, ipId, title}.

    Every normalized input hash appears in the map; unknown ones map to null.
    """
    try:
        entries = lookup.lookup(request.cid_hashes)
    except RegistryError as e:
        logger.error(f"Batch lookup error: {e}")
        raise http_error(e)

    return {
        "success": True,
        "map": {key: (entry.to_dict() if entry else None) for key, entry in entries.items()},
    }


# =============================================================================
# FLOW ENDPOINTS
# =============================================================================

@router.post("/register", response_model=RegistrationResponse)
def register_original(
    request: RegisterRequest,
    writer: AnchorWriter = Depends(get_anchor_writer),
    pinning: PinataClient = Depends(get_pinning),
    ledger: LedgerClient = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    """Register an already pinned metadata cid as an original IP asset."""
    flow = PublishFlow(writer, pinning, ledger)
    try:
        result = flow.register(request.cid, title=request.title)
    except RegistryError as e:
        logger.error(f"Story registration error: {e}")
        raise http_error(e)
    return _registration_response(result, settings)


@router.post("/publish", response_model=RegistrationResponse)
def publish_design(
    title: str = Form(...),
    figma_url: Optional[str] = Form(default=None, alias="figmaUrl"),
    preview_url: Optional[str] = Form(default=None, alias="previewUrl"),
    file: Optional[UploadFile] = File(default=None),
    writer: AnchorWriter = Depends(get_anchor_writer),
    pinning: PinataClient = Depends(get_pinning),
    ledger: LedgerClient = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    """Pin a design and register it in one request."""
    flow = PublishFlow(writer, pinning, ledger)
    try:
        result = flow.publish(
            title,
            figma_url=figma_url,
            preview_url=preview_url,
            file_content=file.file.read() if file is not None else None,
            filename=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
        )
    except RegistryError as e:
        logger.error(f"Publish error: {e}")
        raise http_error(e)
    return _registration_response(result, settings)


@router.post("/remix", response_model=RegistrationResponse)
def register_remix(
    request: RemixRequest,
    writer: AnchorWriter = Depends(get_anchor_writer),
    resolver: ParentResolver = Depends(get_parent_resolver),
    ledger: LedgerClient = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    """
    Register a remix as a derivative of an existing design.

    May block for the parent resolver's retry window while the parent's
    anchor write lands. Returns 409 with reason never_published or
    not_confirmed if it does not.
    """
    flow = RemixFlow(writer, resolver, ledger)
    try:
        result = flow.remix(request.original_cid, request.remix_cid, title=request.title)
    except RegistryError as e:
        logger.error(f"Remix error: {e}")
        raise http_error(e)
    return _registration_response(result, settings)
