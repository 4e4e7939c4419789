"""
Remix flow

pre-anchor remix -> resolve parent ipId -> ledger register derivative -> anchor
"""
import logging
from typing import Optional

from ...errors import ValidationError
from ...models.registry import RegistrationResult
from ..external.ledger import LedgerClient
from ..hashing import cid_hash
from ..registry import AnchorWriter, ParentResolver
from .anchoring import anchor_best_effort, validate_cid

logger = logging.getLogger(__name__)


class RemixFlow:

    def __init__(self, writer: AnchorWriter, resolver: ParentResolver, ledger: LedgerClient):
        self.writer = writer
        self.resolver = resolver
        self.ledger = ledger

    def remix(
        self,
        original_cid: str,
        remix_cid: str,
        title: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Register remix_cid as a derivative of the design pinned at original_cid.

        Raises:
            ValidationError: missing/invalid cids or a self-remix
            ParentNotAnchored: parent has no resolvable ipId after retries
            UpstreamUnavailable: ledger registration failed
        """
        original_cid = validate_cid(original_cid, "originalCid")
        remix_cid = validate_cid(remix_cid, "remixCid")
        if original_cid == remix_cid:
            raise ValidationError("A design cannot be registered as a remix of itself")

        remix_hash = cid_hash(remix_cid)
        warnings = []

        # The remix row may exist without ipId until the ledger confirms.
        warning = anchor_best_effort(
            self.writer, "pre_register", remix_cid,
            cid_hash=remix_hash, title=title, parent_cid=original_cid,
        )
        if warning:
            warnings.append(warning)

        logger.info(f"Resolving parent ipId for {original_cid}")
        resolution = self.resolver.resolve_detailed(original_cid)
        warnings.extend(resolution.warnings)
        logger.info(f"Parent ipId resolved: {resolution.ip_id} after {resolution.attempts} attempt(s)")

        registration = self.ledger.register_derivative(resolution.ip_id, remix_cid, remix_hash)
        logger.info(
            f"Remix registered on chain: parent={resolution.ip_id} "
            f"new={registration.ip_id} tx={registration.tx_hash}"
        )

        warning = anchor_best_effort(
            self.writer, "register_derivative", remix_cid,
            cid_hash=remix_hash,
            ip_id=registration.ip_id,
            tx_hash=registration.tx_hash,
            anchor_tx_hash=registration.tx_hash,
            parent_cid=original_cid,
            parent_ip_id=resolution.ip_id,
        )
        if warning:
            warnings.append(warning)

        return RegistrationResult(
            cid=remix_cid,
            cid_hash=remix_hash,
            ip_id=registration.ip_id,
            tx_hash=registration.tx_hash,
            parent_ip_id=resolution.ip_id,
            warnings=warnings,
        )
