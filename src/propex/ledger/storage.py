"""
GlobalStorage — Глобальное хранилище ресурсов

Ключевое хранилище: address -> {resource_name -> resource}.
Каждый аккаунт хранит не более одного ресурса каждого типа.

Операции:
- exists / borrow — чтение (borrow возвращает изменяемую ссылку)
- move_to — публикация нового ресурса (AlreadyExists если уже есть)
- move_from — извлечение ресурса (NotFound если нет)

Откат транзакции — журнал отмены (undo journal):
- begin() открывает журнал, commit() его сбрасывает, rollback() воспроизводит
- Первое обращение к ключу (address, name) внутри транзакции сохраняет
  копию прежнего значения или факт его отсутствия
- Ресурсы с методами checkpoint() / rollback(mark) (потоки событий)
  не копируются: сохраняется только метка (длина журнала)

Стоимость отката пропорциональна затронутому состоянию, а не истории.

Хранилище само по себе не потокобезопасно: все обращения выполняются
под блокировкой Ledger (см. propex.ledger.ledger).
"""

import copy
from typing import Any, Dict, List, Optional, Tuple

from propex.core.domain.accounts import normalize_address
from propex.core.errors import AlreadyExists, NotFound

Key = Tuple[str, str]

# Маркер отсутствия ресурса до начала транзакции
_ABSENT = object()


class _Checkpoint:
    """Сохранённая метка ресурса, умеющего откатываться самостоятельно."""

    __slots__ = ("resource", "mark")

    def __init__(self, resource: Any):
        self.resource = resource
        self.mark = resource.checkpoint()

    def restore(self) -> Any:
        self.resource.rollback(self.mark)
        return self.resource


def _is_checkpointable(resource: Any) -> bool:
    return callable(getattr(resource, "checkpoint", None)) and callable(
        getattr(resource, "rollback", None)
    )


class GlobalStorage:
    """Хранилище ресурсов, адресуемых парой (address, resource_name)."""

    def __init__(self) -> None:
        self._resources: Dict[str, Dict[str, Any]] = {}
        self._journal: Optional[Dict[Key, Any]] = None

    def exists(self, address: str, name: str) -> bool:
        return name in self._resources.get(normalize_address(address), {})

    def borrow(self, address: str, name: str) -> Any:
        """
        Ссылка на ресурс.

        Raises:
            NotFound: Если ресурс не опубликован на адресе
        """
        address = normalize_address(address)
        try:
            resource = self._resources[address][name]
        except KeyError:
            raise NotFound("resource_not_found", f"{name} at {address}") from None
        self._record(address, name)
        return resource

    def move_to(self, address: str, name: str, resource: Any) -> None:
        """
        Публикация ресурса на адресе.

        Raises:
            AlreadyExists: Если ресурс этого типа уже опубликован
        """
        address = normalize_address(address)
        if name in self._resources.get(address, {}):
            raise AlreadyExists("resource_exists", f"{name} at {address}")
        self._record(address, name)
        self._resources.setdefault(address, {})[name] = resource

    def move_from(self, address: str, name: str) -> Any:
        """
        Извлечение ресурса с адреса.

        Raises:
            NotFound: Если ресурс не опубликован на адресе
        """
        address = normalize_address(address)
        account = self._resources.get(address, {})
        if name not in account:
            raise NotFound("resource_not_found", f"{name} at {address}")
        self._record(address, name)
        resource = account.pop(name)
        if not account:
            del self._resources[address]
        return resource

    def addresses(self) -> List[str]:
        """Адреса, на которых опубликован хотя бы один ресурс."""
        return sorted(self._resources)

    # =========================================================================
    # UNDO JOURNAL
    # =========================================================================

    @property
    def journaling(self) -> bool:
        return self._journal is not None

    def touched(self) -> List[Key]:
        """Ключи, затронутые открытой транзакцией."""
        return sorted(self._journal or {})

    def begin(self) -> None:
        if self._journal is not None:
            raise RuntimeError("Undo journal is already open")
        self._journal = {}

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        """Восстановление всех затронутых ключей к состоянию на begin()."""
        journal, self._journal = self._journal or {}, None
        for (address, name), saved in journal.items():
            account = self._resources.get(address, {})
            if saved is _ABSENT:
                account.pop(name, None)
            else:
                account[name] = saved.restore() if isinstance(saved, _Checkpoint) else saved
                self._resources[address] = account
            if not account:
                self._resources.pop(address, None)

    def _record(self, address: str, name: str) -> None:
        if self._journal is None or (address, name) in self._journal:
            return
        resource = self._resources.get(address, {}).get(name, _ABSENT)
        if resource is _ABSENT:
            saved = _ABSENT
        elif _is_checkpointable(resource):
            saved = _Checkpoint(resource)
        else:
            saved = copy.deepcopy(resource)
        self._journal[(address, name)] = saved
