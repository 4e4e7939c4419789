"""
Registration cache services

Content-hash -> on-chain identifier reconciliation:
- RegistrationCache: upsert / fresh reads / batch reads by hash
- AnchorWriter: idempotent merge of registration results
- ParentResolver: bounded poll for a remix parent's ipId
- BatchLookup: bounded, deduplicated hash -> entry mapping
"""

from .registration_cache import RegistrationCache, DEFAULT_BATCH_LIMIT
from .anchor_writer import AnchorWriter
from .parent_resolver import ParentResolver, ParentResolution
from .batch_lookup import BatchLookup

__all__ = [
    'RegistrationCache',
    'DEFAULT_BATCH_LIMIT',
    'AnchorWriter',
    'ParentResolver',
    'ParentResolution',
    'BatchLookup',
]
