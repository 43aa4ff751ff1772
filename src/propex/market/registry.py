"""
ListingRegistry — Глобальный реестр активных листингов

Ресурс на аккаунте агента маркетплейса. Отображение item_name -> Listing.

Инварианты:
- Не более одного активного Listing на item_name
- listing_id выдаются монотонно (начиная с 1) и не переиспользуются,
  в том числе после delist / purchase
"""

from typing import Dict, List, Optional

from propex.core.domain.listing import Listing
from propex.core.errors import AlreadyExists, NotFound


class ListingRegistry:
    """Реестр листингов, ключ — item_name."""

    def __init__(self) -> None:
        self._listings: Dict[str, Listing] = {}
        self._next_listing_id = 1

    def next_listing_id(self) -> int:
        """Выдача нового идентификатора листинга."""
        listing_id = self._next_listing_id
        self._next_listing_id += 1
        return listing_id

    def contains(self, item_name: str) -> bool:
        return item_name in self._listings

    def get(self, item_name: str) -> Optional[Listing]:
        return self._listings.get(item_name)

    def insert(self, listing: Listing) -> None:
        """
        Raises:
            AlreadyExists: Если item_name уже выставлен
        """
        if listing.item_name in self._listings:
            raise AlreadyExists("listing_exists", f"'{listing.item_name}' is already listed")
        self._listings[listing.item_name] = listing

    def replace(self, listing: Listing) -> Listing:
        """
        Замена листинга новым снапшотом.

        Returns:
            Предыдущий снапшот

        Raises:
            NotFound: Если item_name не выставлен
        """
        previous = self.remove(listing.item_name)
        self._listings[listing.item_name] = listing
        return previous

    def remove(self, item_name: str) -> Listing:
        """
        Raises:
            NotFound: Если item_name не выставлен
        """
        try:
            return self._listings.pop(item_name)
        except KeyError:
            raise NotFound("listing_not_found", f"'{item_name}' is not listed") from None

    def listings(self) -> List[Listing]:
        """Активные листинги в порядке listing_id."""
        return sorted(self._listings.values(), key=lambda listing: listing.listing_id)

    def __len__(self) -> int:
        return len(self._listings)
