"""
Anchor Writer

Persists the result of an external registration event into the
registration cache. Called twice on the happy path for one asset:

1. Right after pinning, with only cid (+ cidHash, title).
2. After ledger confirmation, with ipId and the anchor transaction hash.

Either call may arrive first, may be retried, and may carry partial
information. Calls are idempotent for the same input tuple.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ...errors import StoreUnavailable, ValidationError
from ...models.db_models import StoryRegistrationDB
from ..hashing import cid_hash as compute_cid_hash, normalize_hash
from .registration_cache import RegistrationCache

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnchorWriter:
    """Upserts one registration row per call and commits it."""

    def __init__(self, cache: RegistrationCache, clock: Callable[[], datetime] = _utcnow):
        self.cache = cache
        self.clock = clock

    def anchor(
        self,
        cid: str,
        ip_id: Optional[Any] = None,
        cid_hash: Optional[str] = None,
        anchor_tx_hash: Optional[Any] = None,
        tx_hash: Optional[Any] = None,
        title: Optional[str] = None,
        parent_cid: Optional[str] = None,
        parent_ip_id: Optional[Any] = None,
    ) -> StoryRegistrationDB:
        """
        Record what is known about cid so far.

        Args:
            cid: Content identifier of the pinned metadata document (required)
            ip_id: On-chain asset identifier, once registration completed
            cid_hash: Hash of cid; lowercased, and kept once stored unless it
                matches the hash recomputed from cid
            anchor_tx_hash: Transaction that finalized the registration
            tx_hash: Registration transaction
            title: Display label
            parent_cid: Parent design for derivatives
            parent_ip_id: Parent asset identifier for derivatives

        Returns:
            The stored row after the merge

        Raises:
            ValidationError: cid missing or not a string
            StoreUnavailable: the write could not be committed
        """
        if not isinstance(cid, str) or not cid.strip():
            raise ValidationError("cid is required")
        cid = cid.strip()

        computed = compute_cid_hash(cid)
        fields: Dict[str, Any] = {
            "ip_id": _as_str(ip_id),
            "tx_hash": _as_str(tx_hash),
            "anchor_tx_hash": _as_str(anchor_tx_hash),
            "title": title or None,
            "parent_cid": parent_cid.strip() if parent_cid else None,
            "parent_ip_id": _as_str(parent_ip_id),
        }
        defaults: Dict[str, Any] = {}

        # Only a recompute from cid may replace a stored hash; anything else fills an empty column.
        supplied = normalize_hash(cid_hash) if isinstance(cid_hash, str) and cid_hash.strip() else None
        if supplied == computed:
            fields["cid_hash"] = computed
        else:
            if supplied is not None:
                logger.warning(
                    f"Supplied cidHash {supplied} for cid={cid} differs from computed {computed}"
                )
            defaults["cid_hash"] = supplied or computed

        if fields["anchor_tx_hash"]:
            # First anchor wins for the timestamp; the hash itself may be replaced.
            defaults["anchor_confirmed_at"] = self.clock()

        try:
            record = self.cache.upsert(cid, fields, defaults)
            self.cache.db.commit()
        except StoreUnavailable:
            self.cache.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.cache.db.rollback()
            raise StoreUnavailable(f"Registration cache commit failed: {e}") from e

        logger.info(
            f"Anchored cid={cid} ip_id={record.ip_id} anchor_tx={record.anchor_tx_hash}"
        )
        return record


def _as_str(value: Optional[Any]) -> Optional[str]:
    # Identifiers may arrive as ints from JSON; always store text.
    if value is None or value == "":
        return None
    return str(value)
