"""
RemixHub Registry - IPFS Router

Pins a design file and its metadata document. The pinned cid is
pre-anchored in the registration cache without an ipId.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..dependencies import get_anchor_writer, get_pinning
from ..errors import RegistryError, http_error
from ..services.external import PinataClient
from ..services.flows import DesignPinner
from ..services.registry import AnchorWriter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ipfs", tags=["ipfs"])


@router.post("/upload")
def upload_design(
    title: str = Form(...),
    figma_url: Optional[str] = Form(default=None, alias="figmaUrl"),
    preview_url: Optional[str] = Form(default=None, alias="previewUrl"),
    file: Optional[UploadFile] = File(default=None),
    writer: AnchorWriter = Depends(get_anchor_writer),
    pinning: PinataClient = Depends(get_pinning),
):
    """Upload a design (optional .fig file + metadata) to IPFS."""
    pinner = DesignPinner(writer, pinning)
    try:
        pinned = pinner.pin_design(
            title,
            figma_url=figma_url,
            preview_url=preview_url,
            file_content=file.file.read() if file is not None else None,
            filename=file.filename if file is not None else None,
            content_type=file.content_type if file is not None else None,
        )
    except RegistryError as e:
        logger.error(f"IPFS upload error: {e}")
        raise http_error(e)

    return {
        "success": True,
        "cid": pinned.cid,
        "cidHash": pinned.cid_hash,
        "fileCid": pinned.file_cid,
        "metadata": pinned.metadata,
        "warnings": pinned.warnings,
    }
