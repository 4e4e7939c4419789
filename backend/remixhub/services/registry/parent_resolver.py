"""
Parent Resolver

Turns a parent design's cid into its on-chain ipId before a derivative is
registered.

The parent's publish flow and a remix flow started moments later are not
ordered with respect to each other, so the parent's anchor write may not
be visible yet. The resolver polls the registration cache a bounded
number of times with a fixed delay:

- no row yet            -> keep polling
- row without ip_id     -> keep polling the same row
- row with ip_id        -> stop, then issue one final read for the value

The local cache is the source of truth for the returned ipId. An optional
Story API cross-check only reports disagreement.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ...errors import (
    ParentNeverPublished,
    ParentNotConfirmed,
    UpstreamUnavailable,
    ValidationError,
)
from ...models.db_models import StoryRegistrationDB
from .registration_cache import RegistrationCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_DELAY_SECONDS = 2.0


@dataclass
class ParentResolution:
    parent_cid: str
    ip_id: str
    attempts: int
    warnings: List[dict] = field(default_factory=list)


class ParentResolver:
    """
    Bounded poll of the registration cache for a parent's ipId.

    Usage:
        resolver = ParentResolver(RegistrationCache(db))
        parent_ip_id = resolver.resolve("Qm...")
    """

    def __init__(
        self,
        cache: RegistrationCache,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        story_api=None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.cache = cache
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.story_api = story_api

    def resolve(self, parent_cid: str) -> str:
        """Return the parent's ipId or raise ParentNotAnchored."""
        return self.resolve_detailed(parent_cid).ip_id

    def resolve_detailed(self, parent_cid: str) -> ParentResolution:
        if not isinstance(parent_cid, str) or not parent_cid.strip():
            raise ValidationError("parent cid is required")
        parent_cid = parent_cid.strip()

        seen_row = False
        last: Optional[StoryRegistrationDB] = None
        attempts = 0

        for attempt in range(1, self.max_attempts + 1):
            attempts = attempt
            last = self.cache.get_by_cid(parent_cid)
            if last is not None:
                seen_row = True
                if last.ip_id:
                    break
            if attempt < self.max_attempts:
                state = "no row" if last is None else "row without ipId"
                logger.info(
                    f"Parent {parent_cid} not resolvable yet ({state}); "
                    f"attempt {attempt}/{self.max_attempts}, retrying in {self.delay_seconds}s"
                )
                self.cache.release()
                self.sleep(self.delay_seconds)

        if last is None or not last.ip_id:
            if not seen_row:
                raise ParentNeverPublished(
                    "Parent design is not anchored on Story Protocol yet. "
                    "Anchor the original before remixing.",
                    parent_cid=parent_cid,
                    attempts=attempts,
                )
            raise ParentNotConfirmed(
                "Parent design record does not yet contain an on-chain ipId. "
                "Wait for anchoring to complete and try again.",
                parent_cid=parent_cid,
                attempts=attempts,
            )

        observed_ip_id = last.ip_id
        self.cache.release()
        final = self.cache.get_by_cid(parent_cid)
        if final is not None and final.ip_id:
            ip_id = final.ip_id
        else:
            logger.warning(f"Parent {parent_cid} vanished after resolving; using observed ipId")
            ip_id = observed_ip_id

        resolution = ParentResolution(parent_cid=parent_cid, ip_id=ip_id, attempts=attempts)
        if self.story_api is not None:
            self._cross_check(resolution)
        return resolution

    def _cross_check(self, resolution: ParentResolution) -> None:
        """Compare the cached ipId against the Story API. Never changes the result."""
        try:
            asset = self.story_api.get_asset(resolution.ip_id)
        except UpstreamUnavailable as e:
            logger.warning(f"Parent cross-check skipped for {resolution.ip_id}: {e}")
            return

        if asset is None:
            message = (
                f"Cached ipId {resolution.ip_id} for parent {resolution.parent_cid} "
                "is not known to the Story API"
            )
            logger.warning(message)
            resolution.warnings.append({
                "code": "parent_cross_check_mismatch",
                "cid": resolution.parent_cid,
                "message": message,
            })
