"""External collaborators: pinning, ledger gateway, Story API, chain events."""
from .pinning import PinataClient
from .ledger import LedgerClient, GatewayLedgerClient, commercial_remix_terms
from .story_api import StoryApiClient
from .event_scanner import EventScanner, decode_original_registered

__all__ = [
    "PinataClient",
    "LedgerClient",
    "GatewayLedgerClient",
    "commercial_remix_terms",
    "StoryApiClient",
    "EventScanner",
    "decode_original_registered",
]
