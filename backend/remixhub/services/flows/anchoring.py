"""
Best-effort anchoring

The registration cache write that follows a successful ledger write is
advisory. A failure there is logged and returned as a warning entry; it
never fails the publish or remix.
"""
import logging
import re
from typing import Any, Dict, Optional

from ...errors import PartialPersistenceFailure, StoreUnavailable, ValidationError
from ..registry import AnchorWriter

logger = logging.getLogger(__name__)

# CIDv0 (base58btc sha2-256 multihash) or CIDv1 in base32
CID_PATTERN = re.compile(r"^(Qm[1-9A-HJ-NP-Za-km-z]{44}|b[a-z2-7]{20,})$")


def validate_cid(cid: Any, field_name: str = "cid") -> str:
    if not isinstance(cid, str) or not cid.strip():
        raise ValidationError(f"{field_name} is required")
    cid = cid.strip()
    if not CID_PATTERN.match(cid):
        raise ValidationError(f"Valid IPFS CID required for {field_name}")
    return cid


def anchor_best_effort(
    writer: AnchorWriter,
    stage: str,
    cid: str,
    **fields: Any,
) -> Optional[Dict[str, Any]]:
    """
    Anchor and swallow cache failures.

    Returns:
        None on success, else a warning dict for the result envelope
    """
    try:
        writer.anchor(cid, **fields)
        return None
    except StoreUnavailable as e:
        failure = PartialPersistenceFailure(
            f"Registration cache write failed ({stage}); cache may need repair: {e}",
            cid=cid,
            stage=stage,
        )
        logger.warning(str(failure))
        return failure.to_warning()
