"""
Content hashing for registration lookups.

The RemixHub contract and the Story metadata hash fields index records by
keccak-256 of the metadata CID, not the CID itself. Every lookup path has
to derive the key exactly as the write path did: keccak over the UTF-8
bytes of the CID text, rendered as 0x-prefixed lowercase hex.
"""
from eth_utils import keccak

from ..errors import ValidationError


def normalize_hash(value: str) -> str:
    """Canonical form of a hex hash used for storage and comparison."""
    return value.strip().lower()


def cid_hash(cid: str) -> str:
    """keccak-256 of a content identifier, 0x + 64 lowercase hex chars."""
    if not isinstance(cid, str):
        raise TypeError(f"cid must be a str, got {type(cid).__name__}")
    if not cid:
        raise ValidationError("cid must not be empty")
    return "0x" + keccak(text=cid).hex().lower()


def event_topic(signature: str) -> str:
    """Topic-0 of a Solidity event, e.g. 'Transfer(address,address,uint256)'."""
    return "0x" + keccak(text=signature).hex().lower()
