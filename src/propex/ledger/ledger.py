"""
Ledger — Транзакционное исполнение операций над глобальным состоянием

Модель исполнения:
- Каждая публичная операция — атомарная сериализуемая транзакция
- Все транзакции упорядочены одной re-entrant блокировкой
- Вложенная transaction() присоединяется к внешней (одна атомарная единица
  на несколько подсистем: маркетплейс вызывает settlement asset)
- Любое исключение в теле транзакции воспроизводит журнал отмены
  хранилища, буферизованные события не публикуются
- Timestamp транзакции фиксируется на входе и одинаков для всех её событий

Доставка подписчикам:
- При commit события попадают в FIFO outbox под блокировкой Ledger,
  т.е. в порядке commit
- Outbox разбирает один dispatcher за раз (отдельная блокировка),
  подписчик никогда не вызывается конкурентно
- События, закоммиченные самим подписчиком, встают в конец очереди
"""

import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterator, List, Optional

from propex.core.domain.events import Event
from propex.core.errors import InvalidState

from .events import EventHandle
from .storage import GlobalStorage

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
Subscriber = Callable[[Event], None]


def wall_clock_ms() -> int:
    """Текущее время UTC в миллисекундах."""
    return int(time.time() * 1000)


@dataclass
class Transaction:
    """Активная транзакция: timestamp и буфер событий."""

    ts_utc_ms: int
    events: List[Event] = field(default_factory=list)


class Ledger:
    """
    Общее состояние и дисциплина транзакций.

    Args:
        clock: Источник времени (UTC, миллисекунды); по умолчанию wall clock
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.storage = GlobalStorage()
        self._clock = clock or wall_clock_ms
        self._lock = threading.RLock()
        self._tx: Optional[Transaction] = None
        self._subscribers: List[Subscriber] = []
        self._outbox: Deque[Event] = deque()
        self._dispatch_lock = threading.Lock()
        self._dispatcher: Optional[int] = None

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Атомарная транзакция.

        Yields:
            Активная Transaction (внешняя, если вызов вложенный)
        """
        with self._lock:
            if self._tx is not None:
                yield self._tx
                return

            tx = Transaction(ts_utc_ms=self._clock())
            self._tx = tx
            self.storage.begin()
            try:
                yield tx
            except BaseException as e:
                self.storage.rollback()
                logger.debug("Transaction rolled back: %s", e)
                raise
            else:
                self.storage.commit()
                self._outbox.extend(tx.events)
            finally:
                self._tx = None

        self._drain()

    @contextmanager
    def reading(self) -> Iterator[GlobalStorage]:
        """Согласованное чтение без журнала отмены (под той же блокировкой)."""
        with self._lock:
            yield self.storage

    @property
    def in_transaction(self) -> bool:
        return self._tx is not None

    def now_ms(self) -> int:
        """Timestamp активной транзакции (или текущее время вне транзакции)."""
        if self._tx is not None:
            return self._tx.ts_utc_ms
        return self._clock()

    # =========================================================================
    # EVENTS
    # =========================================================================

    def emit(self, handle: EventHandle, event: Event) -> int:
        """
        Запись события в поток в рамках активной транзакции.

        Raises:
            InvalidState: Если вызвано вне транзакции
        """
        if self._tx is None:
            raise InvalidState("no_active_transaction", "events are emitted inside transactions only")
        seq = handle.append(event)
        self._tx.events.append(event)
        return seq

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Подписка на закоммиченные события.

        Returns:
            Функция отписки
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _drain(self) -> None:
        """Доставка outbox подписчикам в порядке commit."""
        if self._dispatcher == threading.get_ident():
            # Вызов из подписчика: внешний цикл этого потока подхватит новые события
            return
        with self._dispatch_lock:
            self._dispatcher = threading.get_ident()
            try:
                while True:
                    with self._lock:
                        if not self._outbox:
                            return
                        event = self._outbox.popleft()
                        subscribers = list(self._subscribers)
                    self._deliver(event, subscribers)
            finally:
                self._dispatcher = None

    @staticmethod
    def _deliver(event: Event, subscribers: List[Subscriber]) -> None:
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # Состояние уже закоммичено: ошибка подписчика не откатывает транзакцию
                logger.exception("Event subscriber failed on %s", event.kind)
