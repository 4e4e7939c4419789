"""
Request-level flows

- DesignPinner: pin a design and pre-anchor its cid
- PublishFlow: pin, register an original, anchor
- RemixFlow: resolve parent, register a derivative, anchor
- DesignCatalog: event-driven listing, detail, lineage
"""

from .anchoring import anchor_best_effort, validate_cid
from .publish import DesignPinner, PublishFlow
from .remix import RemixFlow
from .catalog import DesignCatalog

__all__ = [
    'anchor_best_effort',
    'validate_cid',
    'DesignPinner',
    'PublishFlow',
    'RemixFlow',
    'DesignCatalog',
]
