"""
RemixHub Registry - Plain data types passed between services and routers.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LookupEntry:
    """What a batch lookup returns for a known content hash."""
    cid: str
    ip_id: Optional[str]
    title: Optional[str] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cid": self.cid,
            "ipId": self.ip_id,
            "title": self.title,
            "txHash": self.tx_hash,
        }


@dataclass(frozen=True)
class LedgerRegistration:
    """Result of a finalized ledger registration."""
    ip_id: str
    tx_hash: str


@dataclass(frozen=True)
class OriginalRegisteredEvent:
    """Decoded RemixHub OriginalRegistered log entry."""
    ip_id: str
    owner: str
    preset_id: int
    cid_hash: str
    tx_hash: Optional[str]
    block_number: int
    log_index: int


@dataclass
class PinnedDesign:
    """A design whose metadata document has been pinned."""
    cid: str
    cid_hash: str
    metadata: Dict[str, Any]
    file_cid: Optional[str] = None
    warnings: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class RegistrationResult:
    """
    Outcome of a publish or remix.

    The ledger write is authoritative; warnings carry cache failures that
    happened after it succeeded.
    """
    cid: str
    cid_hash: str
    ip_id: str
    tx_hash: str
    parent_ip_id: Optional[str] = None
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def cache_consistent(self) -> bool:
        return not self.warnings


@dataclass
class DesignSummary:
    """One row of the design listing."""
    cid_hash: str
    ip_id: str
    owner: Optional[str] = None
    preset_id: Optional[int] = None
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    cid: Optional[str] = None
    registered_ip_id: Optional[str] = None
    title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cidHash": self.cid_hash,
            "ipId": self.ip_id,
            "owner": self.owner,
            "presetId": self.preset_id,
            "blockNumber": self.block_number,
            "txHash": self.tx_hash,
            "cid": self.cid,
            "registeredIpId": self.registered_ip_id,
            "title": self.title,
            "metadata": self.metadata,
        }
