"""
propex — on-ledger property exchange.

Single fungible settlement asset ("property coin") with administrator-gated
mint/burn/freeze, and a marketplace that lists, delists and atomically sells
named indivisible items for a price in that asset plus a fixed platform fee.
"""

from propex.core.errors import (
    AlreadyExists,
    ExchangeError,
    InsufficientFunds,
    InvalidState,
    NotFound,
    PermissionDenied,
)
from propex.exchange import PropertyExchange

__version__ = "0.1.0"

__all__ = [
    "PropertyExchange",
    "ExchangeError",
    "PermissionDenied",
    "NotFound",
    "AlreadyExists",
    "InsufficientFunds",
    "InvalidState",
]
