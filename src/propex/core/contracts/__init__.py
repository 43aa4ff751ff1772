"""
Contract Validation Module

Модуль для валидации JSON контрактов журнала событий.
"""

from .validators import (
    AssetEventValidator,
    ContractValidator,
    MarketEventValidator,
    SchemaLoader,
    ValidationError,
    validate_asset_event,
    validate_event,
    validate_market_event,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "MarketEventValidator",
    "AssetEventValidator",
    "ValidationError",
    # Functions
    "validate_market_event",
    "validate_asset_event",
    "validate_event",
]
