"""
Domain models and value objects.

Contains fundamental domain entities: addresses, Listing, OwnershipRecord, events.
"""

from propex.core.domain.accounts import (
    ADDRESS_LENGTH_BYTES,
    address_bytes,
    derive_resource_address,
    normalize_address,
    require_identity,
)
from propex.core.domain.events import (
    ASSET_EVENT_KINDS,
    MARKET_EVENT_KINDS,
    AssetEvent,
    AssetInitializedEvent,
    BurnedEvent,
    DelistedEvent,
    Event,
    EventKind,
    FrozenToggledEvent,
    ListedEvent,
    MarketEvent,
    MintedEvent,
    PriceChangedEvent,
    PurchasedEvent,
    RegisteredEvent,
    TransferredEvent,
)
from propex.core.domain.listing import (
    ITEM_NAME_MAX_LENGTH,
    UNIT_AMOUNT,
    Listing,
    OwnershipRecord,
)

__all__ = [
    # Accounts
    "ADDRESS_LENGTH_BYTES",
    "address_bytes",
    "derive_resource_address",
    "normalize_address",
    "require_identity",
    # Listing
    "ITEM_NAME_MAX_LENGTH",
    "UNIT_AMOUNT",
    "Listing",
    "OwnershipRecord",
    # Events
    "ASSET_EVENT_KINDS",
    "MARKET_EVENT_KINDS",
    "AssetEvent",
    "AssetInitializedEvent",
    "BurnedEvent",
    "DelistedEvent",
    "Event",
    "EventKind",
    "FrozenToggledEvent",
    "ListedEvent",
    "MarketEvent",
    "MintedEvent",
    "PriceChangedEvent",
    "PurchasedEvent",
    "RegisteredEvent",
    "TransferredEvent",
]
