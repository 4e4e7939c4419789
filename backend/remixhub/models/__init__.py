"""RemixHub Registry - Data Models"""
from .registry import (
    LookupEntry,
    LedgerRegistration,
    OriginalRegisteredEvent,
    PinnedDesign,
    RegistrationResult,
    DesignSummary,
)

__all__ = [
    "LookupEntry",
    "LedgerRegistration",
    "OriginalRegisteredEvent",
    "PinnedDesign",
    "RegistrationResult",
    "DesignSummary",
]
