"""
EventHandle — Append-only поток событий одной категории

Поток хранится как ресурс на аккаунте-владельце, поэтому откат
транзакции откатывает и записанные в ней события. Каждое событие
перед записью проверяется по JSON Schema контракту своей категории.

Журнал отмены хранилища не копирует потоки: он запоминает их длину
(checkpoint) и при откате усекает поток до неё (rollback).
"""

from typing import Dict, Iterable, List, Tuple

from propex.core.contracts import validate_event
from propex.core.domain.events import Event, EventKind


class EventHandle:
    """
    Журнал событий одной категории.

    Attributes:
        kind: Категория событий
    """

    def __init__(self, kind: EventKind):
        self.kind = kind
        self._events: List[Event] = []

    @property
    def counter(self) -> int:
        """Количество записанных событий (sequence number следующего)."""
        return len(self._events)

    def append(self, event: Event) -> int:
        """
        Запись события в журнал.

        Returns:
            Sequence number записанного события

        Raises:
            ValueError: Если категория события не совпадает с категорией потока
            jsonschema.ValidationError: Если событие нарушает контракт
        """
        if event.kind != self.kind.value:
            raise ValueError(f"Event {event.kind} does not belong to {self.kind.value} stream")
        validate_event(event)
        seq = self.counter
        self._events.append(event)
        return seq

    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def checkpoint(self) -> int:
        return self.counter

    def rollback(self, mark: int) -> None:
        del self._events[mark:]

    def __len__(self) -> int:
        return len(self._events)


class EventStreams(Dict[EventKind, EventHandle]):
    """Набор потоков одного владельца (ресурс хранилища)."""

    def checkpoint(self) -> Dict[EventKind, int]:
        return {kind: handle.checkpoint() for kind, handle in self.items()}

    def rollback(self, marks: Dict[EventKind, int]) -> None:
        for kind, mark in marks.items():
            self[kind].rollback(mark)


def new_handles(kinds: Iterable[EventKind]) -> EventStreams:
    """Набор пустых потоков для перечисленных категорий."""
    return EventStreams((kind, EventHandle(kind)) for kind in kinds)
