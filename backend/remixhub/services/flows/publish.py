"""
Publish flow

pin file -> pin metadata -> hash -> pre-anchor -> ledger register -> anchor

Two-phase around the ledger:
- Phase 1 (ledger) failure aborts; nothing further is written.
- Phase 2 (cache) failure is logged and reported as a warning.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from ...errors import ValidationError
from ...models.registry import PinnedDesign, RegistrationResult
from ..external.ledger import LedgerClient
from ..external.pinning import PinataClient
from ..hashing import cid_hash
from ..registry import AnchorWriter
from .anchoring import anchor_best_effort, validate_cid

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class DesignPinner:
    """Pins a design and pre-anchors its cid. Needs no ledger."""

    def __init__(
        self,
        writer: AnchorWriter,
        pinning: PinataClient,
        now_ms: Callable[[], int] = _now_ms,
    ):
        self.writer = writer
        self.pinning = pinning
        self.now_ms = now_ms

    def pin_design(
        self,
        title: str,
        figma_url: Optional[str] = None,
        preview_url: Optional[str] = None,
        file_content: Optional[bytes] = None,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> PinnedDesign:
        """Pin the design file (if any) and its metadata document."""
        if not title or not title.strip():
            raise ValidationError("title is required")
        title = title.strip()

        file_cid = None
        if file_content:
            filename = filename or "design.fig"
            file_cid = self.pinning.pin_file(file_content, filename, content_type)

        metadata: Dict[str, Any] = {
            "title": title,
            "type": "figma-design",
            "figmaUrl": figma_url or None,
            "figFile": f"ipfs://{file_cid}" if file_cid else None,
            "figFileName": filename if file_cid else None,
            "preview": preview_url or None,
            "createdAt": self.now_ms(),
        }
        cid = self.pinning.pin_json(metadata, name=title)
        hashed = cid_hash(cid)

        pinned = PinnedDesign(cid=cid, cid_hash=hashed, metadata=metadata, file_cid=file_cid)
        warning = anchor_best_effort(self.writer, "pin", cid, cid_hash=hashed, title=title)
        if warning:
            pinned.warnings.append(warning)
        return pinned


class PublishFlow:
    """
    Usage:
        flow = PublishFlow(AnchorWriter(RegistrationCache(db)), pinata, ledger)
        result = flow.publish(title="Logo", file_content=data, filename="logo.fig")
    """

    def __init__(
        self,
        writer: AnchorWriter,
        pinning: PinataClient,
        ledger: LedgerClient,
        now_ms: Callable[[], int] = _now_ms,
    ):
        self.writer = writer
        self.ledger = ledger
        self.pinner = DesignPinner(writer, pinning, now_ms=now_ms)

    def pin_design(self, title: str, **kwargs: Any) -> PinnedDesign:
        return self.pinner.pin_design(title, **kwargs)

    def register(self, cid: str, title: Optional[str] = None) -> RegistrationResult:
        """Register an already pinned metadata cid as an original."""
        cid = validate_cid(cid)
        hashed = cid_hash(cid)

        # Phase 1: ledger. Failures propagate.
        registration = self.ledger.register_ip(cid, hashed, title=title)

        # Phase 2: cache. Failures become warnings.
        result = RegistrationResult(
            cid=cid,
            cid_hash=hashed,
            ip_id=registration.ip_id,
            tx_hash=registration.tx_hash,
        )
        warning = anchor_best_effort(
            self.writer,
            "register",
            cid,
            cid_hash=hashed,
            ip_id=registration.ip_id,
            tx_hash=registration.tx_hash,
            anchor_tx_hash=registration.tx_hash,
            title=title,
        )
        if warning:
            result.warnings.append(warning)
        return result

    def publish(
        self,
        title: str,
        figma_url: Optional[str] = None,
        preview_url: Optional[str] = None,
        file_content: Optional[bytes] = None,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> RegistrationResult:
        pinned = self.pin_design(
            title,
            figma_url=figma_url,
            preview_url=preview_url,
            file_content=file_content,
            filename=filename,
            content_type=content_type,
        )
        result = self.register(pinned.cid, title=pinned.metadata["title"])
        result.warnings = pinned.warnings + result.warnings
        return result
