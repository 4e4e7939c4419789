"""
Design catalog

Listing: ledger events -> cid hashes -> batch lookup -> gateway metadata.
Detail and lineage read the registration cache directly.
"""
import logging
from typing import Any, Dict, List, Optional

from ...errors import NotFound, UpstreamUnavailable, ValidationError
from ...models.registry import DesignSummary, LookupEntry
from ..external.event_scanner import EventScanner
from ..external.pinning import PinataClient
from ..registry import BatchLookup, RegistrationCache

logger = logging.getLogger(__name__)


class DesignCatalog:

    def __init__(
        self,
        cache: RegistrationCache,
        scanner: EventScanner,
        pinning: PinataClient,
        chunk_size: int = 200,
        lineage_max_depth: int = 32,
    ):
        self.cache = cache
        self.scanner = scanner
        self.pinning = pinning
        self.lookup = BatchLookup(cache, limit=chunk_size)
        self.chunk_size = chunk_size
        self.lineage_max_depth = lineage_max_depth

    def list_designs(self, owner: Optional[str] = None, with_metadata: bool = True) -> List[DesignSummary]:
        """
        Every registered original (optionally one owner's), newest first.

        Events whose hash is not in the cache are still listed, with cid
        and metadata left empty.
        """
        events = self.scanner.original_registered(owner=owner)
        if not events:
            return []

        hashes = list(dict.fromkeys(ev.cid_hash for ev in events))
        entries: Dict[str, Optional[LookupEntry]] = {}
        for start in range(0, len(hashes), self.chunk_size):
            entries.update(self.lookup.lookup(hashes[start:start + self.chunk_size]))

        metadata_cache: Dict[str, Optional[Dict[str, Any]]] = {}
        designs: List[DesignSummary] = []
        for ev in reversed(events):
            entry = entries.get(ev.cid_hash)
            summary = DesignSummary(
                cid_hash=ev.cid_hash,
                ip_id=ev.ip_id,
                owner=ev.owner,
                preset_id=ev.preset_id,
                block_number=ev.block_number,
                tx_hash=ev.tx_hash,
            )
            if entry is not None:
                summary.cid = entry.cid
                summary.registered_ip_id = entry.ip_id
                summary.title = entry.title
                if with_metadata:
                    if entry.cid not in metadata_cache:
                        metadata_cache[entry.cid] = self._metadata(entry.cid)
                    summary.metadata = metadata_cache[entry.cid]
                    if summary.title is None and summary.metadata:
                        summary.title = summary.metadata.get("title")
            designs.append(summary)
        return designs

    def _metadata(self, cid: str) -> Optional[Dict[str, Any]]:
        try:
            return self.pinning.fetch_json(cid)
        except UpstreamUnavailable as e:
            logger.warning(f"Metadata fetch failed for {cid}: {e}")
            return None

    def get_design(self, cid: str) -> Dict[str, Any]:
        """Cached registration plus its metadata document."""
        if not cid or not cid.strip():
            raise ValidationError("cid is required")
        cid = cid.strip()
        record = self.cache.get_by_cid(cid)
        if record is None:
            raise NotFound(f"No registration found for cid {cid}")
        return {"record": record.to_dict(), "metadata": self._metadata(cid)}

    def lineage(self, cid: str) -> List[Dict[str, Any]]:
        """
        Derivative chain from cid up to its root original.

        The first element is cid itself. The walk stops at a row with no
        parent, a parent that was never cached, a cycle, or max depth.
        """
        if not cid or not cid.strip():
            raise ValidationError("cid is required")
        current = self.cache.get_by_cid(cid.strip())
        if current is None:
            raise NotFound(f"No registration found for cid {cid}")

        chain = [current.to_dict()]
        visited = {current.cid}
        while current.parent_cid and len(chain) <= self.lineage_max_depth:
            if current.parent_cid in visited:
                logger.warning(f"Lineage cycle detected at {current.parent_cid}")
                break
            parent = self.cache.get_by_cid(current.parent_cid)
            if parent is None:
                chain.append({"cid": current.parent_cid, "ipId": current.parent_ip_id, "missing": True})
                break
            chain.append(parent.to_dict())
            visited.add(parent.cid)
            current = parent
        return chain
