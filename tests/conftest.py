"""Общие fixtures: адреса участников, детерминированные часы, развёрнутая биржа."""

import pytest

from propex import PropertyExchange
from propex.core.domain import normalize_address

ADMIN = normalize_address("0xad")
SELLER = normalize_address("0x5e11e4")
BUYER = normalize_address("0xb0b")
OTHER = normalize_address("0x07")

START_TS_MS = 1_700_000_000_000
FUNDING = 10_000


class StepClock:
    """Часы, продвигающиеся на step_ms при каждом чтении."""

    def __init__(self, start_ms: int = START_TS_MS, step_ms: int = 1_000):
        self.now = start_ms
        self.step_ms = step_ms

    def __call__(self) -> int:
        self.now += self.step_ms
        return self.now


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def exchange(clock) -> PropertyExchange:
    """Биржа без инициализации."""
    return PropertyExchange(ADMIN, clock=clock)


@pytest.fixture
def live_exchange(exchange) -> PropertyExchange:
    """Инициализированные актив и маркетплейс, SELLER/BUYER/OTHER пополнены на FUNDING."""
    exchange.initialize_asset(ADMIN, "Property Coin", "PROP", 8, True)
    exchange.initialize(ADMIN)
    for account in (SELLER, BUYER, OTHER):
        exchange.register(account)
        exchange.mint(ADMIN, account, FUNDING)
    return exchange
