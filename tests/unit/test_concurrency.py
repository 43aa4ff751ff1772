"""
Тесты сериализации транзакций при конкурентных вызовах.

Coverage:
- Гонка покупателей за один листинг: ровно одна покупка успешна
- Гонка за одно item_name при листинге: ровно один листинг
- Параллельные переводы сохраняют supply
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from propex.core.domain import EventKind, normalize_address
from propex.core.errors import AlreadyExists, ExchangeError, NotFound
from tests.conftest import ADMIN, FUNDING, SELLER

N_WORKERS = 16


@pytest.fixture
def buyers(live_exchange):
    accounts = [normalize_address(hex(0x1000 + i)) for i in range(N_WORKERS)]
    for account in accounts:
        live_exchange.register(account)
        live_exchange.mint(ADMIN, account, FUNDING)
    return accounts


def _attempt(operation):
    try:
        operation()
        return None
    except ExchangeError as e:
        return e


class TestConcurrency:
    def test_racing_buyers_single_winner(self, live_exchange, buyers):
        live_exchange.list(SELLER, 100, "lot-1")

        with ThreadPoolExecutor(max_workers=N_WORKERS) as pool:
            results = list(
                pool.map(lambda b: _attempt(lambda: live_exchange.buy(b, "lot-1")), buyers)
            )

        winners = [b for b, r in zip(buyers, results) if r is None]
        assert len(winners) == 1
        assert all(isinstance(r, NotFound) for r in results if r is not None)

        (winner,) = winners
        assert live_exchange.balance(winner) == FUNDING - 1_000 - 10
        losers = [b for b in buyers if b != winner]
        assert all(live_exchange.balance(b) == FUNDING for b in losers)
        assert len(live_exchange.events(EventKind.PURCHASED)) == 1

    def test_racing_listings_single_entry(self, live_exchange, buyers):
        with ThreadPoolExecutor(max_workers=N_WORKERS) as pool:
            results = list(
                pool.map(lambda s: _attempt(lambda: live_exchange.list(s, 50, "lot-x")), buyers)
            )

        assert sum(r is None for r in results) == 1
        assert all(isinstance(r, AlreadyExists) for r in results if r is not None)
        assert len(live_exchange.listings()) == 1

    def test_parallel_transfers_preserve_supply(self, live_exchange, buyers):
        supply = live_exchange.total_supply()
        pairs = [(buyers[i], buyers[(i + 1) % len(buyers)]) for i in range(len(buyers))] * 5

        with ThreadPoolExecutor(max_workers=N_WORKERS) as pool:
            list(pool.map(lambda p: live_exchange.transfer(p[0], p[1], 7), pairs))

        assert live_exchange.total_supply() == supply
        assert all(live_exchange.balance(b) == FUNDING for b in buyers)
