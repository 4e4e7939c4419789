"""
RemixHub Registry - SQLAlchemy ORM Models
Registration cache: content hash -> on-chain identifier
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Column, String, DateTime

from ..database import Base


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class StoryRegistrationDB(Base):
    """
    One row per pinned metadata document.

    The row may exist without ip_id between pinning and ledger
    confirmation. ip_id, once set, is never cleared. cid_hash is
    keccak-256 of the cid in lowercase hex and is what the ledger's event
    logs index by.
    """
    __tablename__ = "story_registrations"

    cid = Column(String(128), primary_key=True)
    cid_hash = Column(String(66), nullable=True, index=True)

    ip_id = Column(String(128), nullable=True)
    tx_hash = Column(String(66), nullable=True)
    title = Column(String(255), nullable=True)

    # Anchoring (final on-chain registration result)
    anchor_tx_hash = Column(String(66), nullable=True)
    anchor_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    # Derivative lineage
    parent_cid = Column(String(128), nullable=True, index=True)
    parent_ip_id = Column(String(128), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)."""
        return {
            "cid": self.cid,
            "cidHash": self.cid_hash,
            "ipId": self.ip_id,
            "transactionHash": self.tx_hash,
            "anchorTransactionHash": self.anchor_tx_hash,
            "title": self.title,
            "parentCid": self.parent_cid,
            "parentIpId": self.parent_ip_id,
            "anchorConfirmedAt": _iso(self.anchor_confirmed_at),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<StoryRegistrationDB cid={self.cid!r} ip_id={self.ip_id!r}>"
