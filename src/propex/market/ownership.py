"""
OwnershipIndex — Индекс владения аккаунта

Ресурс на аккаунте владельца: item_name -> OwnershipRecord.
Создаётся при первом приобретении предмета (листинг или покупка).

Инвариант: в индексе одного аккаунта не более одной записи на item_name.
"""

from typing import Dict, List, Optional

from propex.core.domain.listing import OwnershipRecord
from propex.core.errors import AlreadyExists, NotFound

OWNERSHIP_RESOURCE = "OwnershipIndex"


class OwnershipIndex:
    """Записи владения одного аккаунта."""

    def __init__(self) -> None:
        self._records: Dict[str, OwnershipRecord] = {}

    def contains(self, item_name: str) -> bool:
        return item_name in self._records

    def get(self, item_name: str) -> Optional[OwnershipRecord]:
        return self._records.get(item_name)

    def insert(self, record: OwnershipRecord) -> None:
        """
        Raises:
            AlreadyExists: Если запись для item_name уже есть
        """
        if record.item_name in self._records:
            raise AlreadyExists(
                "ownership_exists", f"'{record.item_name}' already recorded for {record.owner}"
            )
        self._records[record.item_name] = record

    def remove(self, item_name: str) -> OwnershipRecord:
        """
        Raises:
            NotFound: Если записи для item_name нет
        """
        try:
            return self._records.pop(item_name)
        except KeyError:
            raise NotFound("ownership_not_found", f"no record for '{item_name}'") from None

    def records(self) -> List[OwnershipRecord]:
        return [self._records[name] for name in sorted(self._records)]

    def __len__(self) -> int:
        return len(self._records)
