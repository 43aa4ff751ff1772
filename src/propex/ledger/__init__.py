"""Ledger runtime: global resource storage, transactions, event streams."""

from .events import EventHandle, EventStreams, new_handles
from .ledger import Clock, Ledger, Transaction, wall_clock_ms
from .storage import GlobalStorage

__all__ = [
    "Clock",
    "EventHandle",
    "EventStreams",
    "GlobalStorage",
    "Ledger",
    "Transaction",
    "new_handles",
    "wall_clock_ms",
]
