"""
RemixHub Registry - IP Asset Check Router

Checks whether an ipId is known to Story Protocol.
"""
import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..dependencies import get_story_api
from ..errors import UpstreamUnavailable
from ..services.external import StoryApiClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assets"])

IP_ID_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


@router.get("/check-ip")
def check_ip(
    ip_id: Optional[str] = Query(default=None, alias="ipId"),
    story_api: StoryApiClient = Depends(get_story_api),
):
    """Look up an ipId (20-byte hex) on the Story API."""
    if not ip_id:
        return JSONResponse(
            status_code=400,
            content={
                "exists": False,
                "error": "Missing required parameter: ipId (20-byte hex format, e.g., 0x...)",
            },
        )
    if not IP_ID_PATTERN.match(ip_id):
        return JSONResponse(
            status_code=400,
            content={
                "exists": False,
                "error": "Invalid ipId format. Must be 20-byte hex (0x + 40 hex chars)",
            },
        )

    try:
        asset = story_api.get_asset(ip_id)
    except UpstreamUnavailable as e:
        logger.error(f"check-ip failed for {ip_id}: {e}")
        return JSONResponse(status_code=502, content={"exists": False, "error": str(e)})

    if asset is None:
        return {"exists": False, "ipId": ip_id, "error": "IP Asset not found"}
    return {"exists": True, "ipId": ip_id, "data": asset}
