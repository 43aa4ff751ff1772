"""
Тесты для Ledger runtime: хранилище ресурсов, транзакции, потоки событий

Coverage:
- move_to / borrow / move_from и их ошибки
- Откат транзакции восстанавливает состояние
- Вложенные транзакции присоединяются к внешней
- События публикуются подписчикам только после commit, в порядке commit
- Журнал отмены затрагивает только изменённые ключи, потоки событий не копируются
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from jsonschema import ValidationError

from propex.core.domain import EventKind, ListedEvent, RegisteredEvent, normalize_address
from propex.core.errors import AlreadyExists, InvalidState, NotFound
from propex.ledger import EventHandle, EventStreams, GlobalStorage, Ledger, new_handles
from tests.conftest import BUYER, SELLER

ACCOUNT = normalize_address("0xa1")
OTHER = normalize_address("0xa2")


def _registered(ts: int = 1) -> RegisteredEvent:
    return RegisteredEvent(ts_utc_ms=ts, account=ACCOUNT)


class TestGlobalStorage:
    """Тесты хранилища ресурсов."""

    def test_move_to_and_borrow(self):
        storage = GlobalStorage()
        storage.move_to("0xa1", "Thing", {"v": 1})
        assert storage.exists(ACCOUNT, "Thing")
        assert storage.borrow(ACCOUNT, "Thing") == {"v": 1}

    def test_duplicate_move_to(self):
        storage = GlobalStorage()
        storage.move_to(ACCOUNT, "Thing", 1)
        with pytest.raises(AlreadyExists) as exc:
            storage.move_to(ACCOUNT, "Thing", 2)
        assert exc.value.reason == "resource_exists"

    def test_borrow_missing(self):
        with pytest.raises(NotFound):
            GlobalStorage().borrow(ACCOUNT, "Thing")

    def test_move_from_removes(self):
        storage = GlobalStorage()
        storage.move_to(ACCOUNT, "Thing", 1)
        assert storage.move_from(ACCOUNT, "Thing") == 1
        assert not storage.exists(ACCOUNT, "Thing")
        assert storage.addresses() == []
        with pytest.raises(NotFound):
            storage.move_from(ACCOUNT, "Thing")

    def test_rollback_restores_borrowed_value(self):
        storage = GlobalStorage()
        storage.move_to(ACCOUNT, "Thing", {"v": 1})
        storage.begin()
        storage.borrow(ACCOUNT, "Thing")["v"] = 2
        storage.rollback()
        assert storage.borrow(ACCOUNT, "Thing") == {"v": 1}
        assert not storage.journaling

    def test_rollback_undoes_moves(self):
        storage = GlobalStorage()
        storage.move_to(ACCOUNT, "Kept", 1)
        storage.begin()
        assert storage.move_from(ACCOUNT, "Kept") == 1
        storage.move_to(OTHER, "Fresh", 2)
        storage.rollback()
        assert storage.borrow(ACCOUNT, "Kept") == 1
        assert not storage.exists(OTHER, "Fresh")
        assert storage.addresses() == [ACCOUNT]

    def test_commit_discards_journal(self):
        storage = GlobalStorage()
        storage.begin()
        storage.move_to(ACCOUNT, "Thing", 1)
        assert storage.touched() == [(ACCOUNT, "Thing")]
        storage.commit()
        assert storage.touched() == []
        assert storage.borrow(ACCOUNT, "Thing") == 1

    def test_journal_is_not_reentrant(self):
        storage = GlobalStorage()
        storage.begin()
        with pytest.raises(RuntimeError):
            storage.begin()


class TestTransactions:
    """Тесты атомарности транзакций."""

    def test_commit_keeps_changes(self):
        ledger = Ledger(clock=lambda: 100)
        with ledger.transaction():
            ledger.storage.move_to(ACCOUNT, "Thing", {"v": 1})
        assert ledger.storage.exists(ACCOUNT, "Thing")

    def test_rollback_restores_state(self):
        ledger = Ledger(clock=lambda: 100)
        with ledger.transaction():
            ledger.storage.move_to(ACCOUNT, "Thing", {"v": 1})

        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.storage.borrow(ACCOUNT, "Thing")["v"] = 99
                ledger.storage.move_to(ACCOUNT, "Other", 1)
                raise RuntimeError("abort")

        assert ledger.storage.borrow(ACCOUNT, "Thing") == {"v": 1}
        assert not ledger.storage.exists(ACCOUNT, "Other")
        assert not ledger.in_transaction

    def test_nested_transaction_joins_outer(self):
        ledger = Ledger(clock=lambda: 100)
        with pytest.raises(RuntimeError):
            with ledger.transaction() as outer:
                with ledger.transaction() as inner:
                    assert inner is outer
                    ledger.storage.move_to(ACCOUNT, "Inner", 1)
                raise RuntimeError("outer fails after inner succeeded")
        assert not ledger.storage.exists(ACCOUNT, "Inner")

    def test_transaction_timestamp_fixed(self):
        ticks = iter(range(1000, 2000))
        ledger = Ledger(clock=lambda: next(ticks))
        with ledger.transaction() as tx:
            assert ledger.now_ms() == tx.ts_utc_ms
            assert ledger.now_ms() == tx.ts_utc_ms


class TestEvents:
    """Тесты потоков событий и подписок."""

    def test_emit_requires_transaction(self):
        ledger = Ledger()
        with pytest.raises(InvalidState):
            ledger.emit(EventHandle(EventKind.REGISTERED), _registered())

    def test_handle_rejects_foreign_kind(self):
        handle = EventHandle(EventKind.LISTED)
        with pytest.raises(ValueError):
            handle.append(_registered())

    def test_handle_sequence_numbers(self):
        handle = EventHandle(EventKind.REGISTERED)
        assert handle.append(_registered(1)) == 0
        assert handle.append(_registered(2)) == 1
        assert len(handle) == 2
        assert handle.counter == 2

    def test_handle_rollback_truncates_counter(self):
        handle = EventHandle(EventKind.REGISTERED)
        handle.append(_registered(1))
        mark = handle.checkpoint()
        handle.append(_registered(2))
        handle.rollback(mark)
        assert handle.counter == 1
        assert handle.append(_registered(3)) == 1
        assert [e.ts_utc_ms for e in handle.events()] == [1, 3]

    def test_event_streams_checkpoint(self):
        streams = new_handles([EventKind.REGISTERED, EventKind.LISTED])
        assert isinstance(streams, EventStreams)
        marks = streams.checkpoint()
        streams[EventKind.REGISTERED].append(_registered())
        streams.rollback(marks)
        assert len(streams[EventKind.REGISTERED]) == 0

    def test_subscribers_receive_only_committed(self):
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", EventHandle(EventKind.REGISTERED))
        received = []
        ledger.subscribe(received.append)

        with ledger.transaction():
            ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), _registered(100))
        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), _registered(200))
                raise RuntimeError("abort")

        assert [e.ts_utc_ms for e in received] == [100]
        assert len(ledger.storage.borrow(ACCOUNT, "Events")) == 1

    def test_failing_subscriber_does_not_break_commit(self):
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", EventHandle(EventKind.REGISTERED))
        received = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        ledger.subscribe(broken)
        ledger.subscribe(received.append)
        with ledger.transaction():
            ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), _registered())

        assert len(received) == 1

    def test_unsubscribe(self):
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", EventHandle(EventKind.REGISTERED))
        received = []
        unsubscribe = ledger.subscribe(received.append)
        unsubscribe()
        with ledger.transaction():
            ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), _registered())
        assert received == []

    def test_invalid_event_aborts(self):
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", EventHandle(EventKind.LISTED))
        bad = ListedEvent(
            ts_utc_ms=1, item_name="x", price=1, created_at=1, listing_id=1, seller="0x5"
        )
        with pytest.raises(ValidationError):
            with ledger.transaction():
                ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), bad)
        assert len(ledger.storage.borrow(ACCOUNT, "Events")) == 0


def _stream(ledger: Ledger) -> EventHandle:
    return ledger.storage.borrow(ACCOUNT, "Events")[EventKind.REGISTERED]


class TestUndoJournal:
    """Тесты стоимости и границ отката."""

    @pytest.fixture
    def no_stream_copies(self, monkeypatch):
        def forbidden(self, memo):
            raise AssertionError("event stream must not be deep-copied")

        monkeypatch.setattr(EventHandle, "__deepcopy__", forbidden, raising=False)

    def test_rollback_truncates_streams_in_place(self, no_stream_copies):
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", new_handles([EventKind.REGISTERED]))
        streams = ledger.storage.borrow(ACCOUNT, "Events")
        for ts in range(200):
            with ledger.transaction():
                ledger.emit(_stream(ledger), _registered(ts))

        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.emit(_stream(ledger), _registered(999))
                raise RuntimeError("abort")

        assert ledger.storage.borrow(ACCOUNT, "Events") is streams
        assert streams[EventKind.REGISTERED].counter == 200

    def test_journal_holds_only_touched_keys(self):
        ledger = Ledger(clock=lambda: 100)
        holders = [normalize_address(hex(i + 1)) for i in range(300)]
        for holder in holders:
            ledger.storage.move_to(holder, "Thing", {"v": 0})

        with ledger.transaction():
            ledger.storage.borrow(holders[0], "Thing")["v"] += 1
            ledger.storage.borrow(holders[1], "Thing")["v"] += 1
            ledger.storage.borrow(holders[0], "Thing")["v"] += 1
            assert ledger.storage.touched() == [(holders[0], "Thing"), (holders[1], "Thing")]

        assert not ledger.storage.journaling
        assert ledger.storage.borrow(holders[0], "Thing") == {"v": 2}

    def test_exchange_history_is_never_copied(self, no_stream_copies, live_exchange):
        for _ in range(50):
            live_exchange.transfer(SELLER, BUYER, 1)
            live_exchange.transfer(BUYER, SELLER, 1)
        live_exchange.list(SELLER, 5, "lot-1")
        with pytest.raises(AlreadyExists):
            live_exchange.list(SELLER, 5, "lot-1")

        assert len(live_exchange.listings()) == 1
        assert len(live_exchange.events(EventKind.LISTED)) == 1


class TestDeliveryOrder:
    """Тесты порядка доставки событий между потоками."""

    @staticmethod
    def _ledger():
        ledger = Ledger(clock=lambda: 100)
        ledger.storage.move_to(ACCOUNT, "Events", EventHandle(EventKind.REGISTERED))
        return ledger

    @staticmethod
    def _commit(ledger, event):
        with ledger.transaction():
            ledger.emit(ledger.storage.borrow(ACCOUNT, "Events"), event)

    def test_delivery_follows_commit_order(self, monkeypatch):
        ledger = self._ledger()
        received = []
        ledger.subscribe(lambda event: received.append(event.account))

        committed = threading.Event()
        drain = ledger._drain

        def delayed_drain():
            if threading.current_thread().name == "first-writer":
                committed.set()
                time.sleep(0.2)
            drain()

        monkeypatch.setattr(ledger, "_drain", delayed_drain)

        first = threading.Thread(
            target=self._commit,
            args=(ledger, RegisteredEvent(ts_utc_ms=100, account=ACCOUNT)),
            name="first-writer",
        )
        first.start()
        assert committed.wait(timeout=5)
        self._commit(ledger, RegisteredEvent(ts_utc_ms=100, account=OTHER))
        first.join(timeout=5)

        assert received == [ACCOUNT, OTHER]

    def test_subscriber_never_called_concurrently(self):
        ledger = self._ledger()
        guard = threading.Lock()
        active = 0
        peak = 0
        received = []

        def slow_subscriber(event):
            nonlocal active, peak
            with guard:
                active += 1
                peak = max(peak, active)
            time.sleep(0.001)
            received.append(event)
            with guard:
                active -= 1

        ledger.subscribe(slow_subscriber)
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda ts: self._commit(ledger, _registered(ts)), range(64)))

        assert peak == 1
        assert received == list(ledger.storage.borrow(ACCOUNT, "Events").events())

    def test_events_committed_by_subscriber_are_queued(self):
        ledger = self._ledger()
        first_seen = []
        second_seen = []

        def cascading(event):
            first_seen.append(event.account)
            if event.account == ACCOUNT:
                self._commit(ledger, RegisteredEvent(ts_utc_ms=100, account=OTHER))

        ledger.subscribe(cascading)
        ledger.subscribe(lambda event: second_seen.append(event.account))
        self._commit(ledger, RegisteredEvent(ts_utc_ms=100, account=ACCOUNT))

        assert first_seen == [ACCOUNT, OTHER]
        assert second_seen == [ACCOUNT, OTHER]
