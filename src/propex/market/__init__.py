"""
Marketplace — реестр листингов, индексы владения, оркестратор покупок.

Оркестратор импортируется из propex.market.marketplace.
"""

from .ownership import OWNERSHIP_RESOURCE, OwnershipIndex
from .registry import ListingRegistry

__all__ = [
    "ListingRegistry",
    "OwnershipIndex",
    "OWNERSHIP_RESOURCE",
]
