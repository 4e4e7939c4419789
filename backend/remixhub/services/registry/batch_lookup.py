"""
Batch Lookup

Resolves content hashes found in ledger event logs back to cached
{cid, ipId, title} entries. The result map is total over the normalized
input keys so scanning code can index it without a presence check.
"""
import logging
from typing import Any, Dict, List, Optional

from ...errors import ValidationError
from ...models.registry import LookupEntry
from ..hashing import normalize_hash
from .registration_cache import DEFAULT_BATCH_LIMIT, RegistrationCache

logger = logging.getLogger(__name__)


class BatchLookup:

    def __init__(self, cache: RegistrationCache, limit: int = DEFAULT_BATCH_LIMIT):
        self.cache = cache
        self.limit = limit

    def lookup(self, hashes: Any) -> Dict[str, Optional[LookupEntry]]:
        """
        Map each distinct lowercase hash to its cached entry or None.

        Raises:
            ValidationError: empty input, non-string entries, or more than
                `limit` entries (checked before any query)
        """
        keys = self._validate(hashes)
        rows = self.cache.get_many_by_hash(keys)

        result: Dict[str, Optional[LookupEntry]] = {}
        for key in keys:
            row = rows.get(key)
            result[key] = None if row is None else LookupEntry(
                cid=row.cid,
                ip_id=row.ip_id,
                title=row.title,
                tx_hash=row.tx_hash,
            )

        found = sum(1 for entry in result.values() if entry is not None)
        logger.debug(f"Batch lookup resolved {found}/{len(keys)} cid hashes")
        return result

    def _validate(self, hashes: Any) -> List[str]:
        if not isinstance(hashes, (list, tuple)) or not hashes:
            raise ValidationError("cidHashes required")
        if len(hashes) > self.limit:
            raise ValidationError(
                f"Too many cidHashes: {len(hashes)} (max {self.limit} per request)"
            )
        for value in hashes:
            if not isinstance(value, str) or not value.strip():
                raise ValidationError("cidHashes must be non-empty strings")
        return list(dict.fromkeys(normalize_hash(value) for value in hashes))
