"""
Star Ledger for priced stories and posts

This module provides:
- Single-charge content views keyed by (content, viewer)
- 60/20/20 split of each charge between owner, viewer cashback and platform
- Append-only ledger transactions and wallet history
- Best-effort earning/cashback notifications
- Content moderation (suspend / reactivate)
"""

from .models import (
    ContentKind,
    ContentStatus,
    ViewError,
    ViewOutcome,
    AccountBalance,
    ContentItem,
    LedgerTransaction,
    ViewRecord,
)
from .service import LedgerService
from .split import STAR_VALUE_NGN, compute_split

__all__ = [
    "ContentKind",
    "ContentStatus",
    "ViewError",
    "ViewOutcome",
    "AccountBalance",
    "ContentItem",
    "LedgerTransaction",
    "ViewRecord",
    "LedgerService",
    "STAR_VALUE_NGN",
    "compute_split",
]
