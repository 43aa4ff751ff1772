"""Capability Vault: module-owned resource accounts and delegated signing."""

from .capability import (
    MARKET_EVENTS_RESOURCE,
    REGISTRY_RESOURCE,
    VAULT_RESOURCE,
    Agent,
    CapabilityVault,
    SignerCapability,
    VaultConfig,
    create_resource_account,
)

__all__ = [
    "Agent",
    "CapabilityVault",
    "SignerCapability",
    "VaultConfig",
    "create_resource_account",
    "MARKET_EVENTS_RESOURCE",
    "REGISTRY_RESOURCE",
    "VAULT_RESOURCE",
]
