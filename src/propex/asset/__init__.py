"""Settlement Asset Ledger: the single fungible asset used for pricing and fees."""

from .coin import (
    ASSET_EVENTS_RESOURCE,
    ASSET_INFO_RESOURCE,
    CAPABILITIES_RESOURCE,
    HOLDING_RESOURCE,
    AssetCapabilities,
    AssetConfig,
    AssetMetadata,
    BurnCapability,
    CoinStore,
    FreezeCapability,
    MintCapability,
    SettlementAsset,
)

__all__ = [
    "AssetCapabilities",
    "AssetConfig",
    "AssetMetadata",
    "BurnCapability",
    "CoinStore",
    "FreezeCapability",
    "MintCapability",
    "SettlementAsset",
    "ASSET_EVENTS_RESOURCE",
    "ASSET_INFO_RESOURCE",
    "CAPABILITIES_RESOURCE",
    "HOLDING_RESOURCE",
]
