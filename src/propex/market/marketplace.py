"""
Marketplace — листинг, снятие и атомарная продажа именованных предметов

Оркестратор координирует реестр листингов, индексы владения и переводы
settlement asset как единую атомарную транзакцию: либо все изменения
(реестр, индексы, балансы, события) вступают в силу, либо ни одно.

list(seller, price, item_name):
1. Агент маркетплейса и его реестр
2. Новый listing_id
3. item_name уже выставлен → AlreadyExists
4. balance(seller) >= platform_fee, иначе InsufficientFunds
5. Listing в реестр
6. OwnershipRecord в индекс продавца (дубликат → AlreadyExists)
7. Комиссия seller → агент
8. Событие Listed

delist(seller, item_name):
1. У seller нет индекса владения → PermissionDenied
2. item_name не выставлен → NotFound
3. seller не автор листинга → PermissionDenied
4. Удаление листинга и записи владения продавца, событие Delisted

buy(buyer, item_name):
1. item_name не выставлен → NotFound
2. buyer == seller → InvalidState; у продавца нет записи владения → NotFound
3. Удаление листинга
4. balance(buyer) >= price * price_multiplier + platform_fee, иначе InsufficientFunds
5. price * price_multiplier: buyer → seller
6. platform_fee: buyer → агент
7. Запись владения переносится из индекса продавца в индекс покупателя
8. Событие Purchased
"""

import logging
from dataclasses import dataclass
from typing import Dict, Final, List, Optional, Tuple

from propex.asset.coin import SettlementAsset
from propex.core.domain.accounts import normalize_address
from propex.core.domain.events import (
    DelistedEvent,
    Event,
    EventKind,
    ListedEvent,
    PriceChangedEvent,
    PurchasedEvent,
)
from propex.core.domain.listing import Listing, OwnershipRecord
from propex.core.errors import AlreadyExists, InsufficientFunds, InvalidState, NotFound, PermissionDenied
from propex.ledger import EventHandle, Ledger
from propex.vault.capability import (
    MARKET_EVENTS_RESOURCE,
    REGISTRY_RESOURCE,
    Agent,
    CapabilityVault,
)

from .ownership import OWNERSHIP_RESOURCE, OwnershipIndex
from .registry import ListingRegistry

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

# Фиксированная комиссия платформы (в базовых единицах актива)
PLATFORM_FEE: Final[int] = 10

# Множитель цены: продавцу переводится price * PRICE_MULTIPLIER
PRICE_MULTIPLIER: Final[int] = 10


@dataclass(frozen=True)
class MarketConfig:
    """
    Конфигурация маркетплейса.

    - platform_fee: комиссия, списываемая с продавца при листинге
      и с покупателя при покупке
    - price_multiplier: коэффициент конверсии цены листинга в сумму перевода
    """

    platform_fee: int = PLATFORM_FEE
    price_multiplier: int = PRICE_MULTIPLIER

    def __post_init__(self):
        if self.platform_fee < 0:
            raise ValueError(f"platform_fee must be non-negative, got {self.platform_fee}")
        if self.price_multiplier < 1:
            raise ValueError(f"price_multiplier must be >= 1, got {self.price_multiplier}")


class Marketplace:
    """
    Оркестратор листингов и покупок.

    Args:
        ledger: Общий Ledger
        vault: Capability vault (агент маркетплейса)
        asset: Settlement asset
        config: Конфигурация маркетплейса
    """

    def __init__(
        self,
        ledger: Ledger,
        vault: CapabilityVault,
        asset: SettlementAsset,
        config: Optional[MarketConfig] = None,
    ):
        self.ledger = ledger
        self.vault = vault
        self.asset = asset
        self.config = config or MarketConfig()

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def list(self, seller: str, price: int, item_name: str) -> Listing:
        """
        Выставление предмета на продажу.

        Returns:
            Созданный Listing

        Raises:
            AlreadyExists: item_name уже выставлен / запись владения уже есть
            InsufficientFunds: баланс продавца меньше комиссии
            InvalidState: невалидные item_name / price
        """
        with self.ledger.transaction() as tx:
            seller = normalize_address(seller)
            agent = self.vault.resolve_agent()
            registry = self._registry(agent)

            listing_id = registry.next_listing_id()
            if registry.contains(item_name):
                raise AlreadyExists("listing_exists", f"'{item_name}' is already listed")
            listing = _build_listing(
                item_name=item_name,
                price=price,
                created_at=tx.ts_utc_ms,
                listing_id=listing_id,
                seller=seller,
            )

            fee = self.config.platform_fee
            balance = self.asset.balance(seller)
            if balance < fee:
                raise InsufficientFunds(
                    "balance_below_fee", f"{seller} holds {balance}, fee {fee}"
                )

            registry.insert(listing)
            self._index(seller, create=True).insert(
                OwnershipRecord(item_name=listing.item_name, owner=seller)
            )
            self._collect_fee(agent, seller, fee)

            self._emit(
                agent,
                EventKind.LISTED,
                ListedEvent(
                    ts_utc_ms=tx.ts_utc_ms,
                    item_name=listing.item_name,
                    price=listing.price,
                    created_at=listing.created_at,
                    listing_id=listing.listing_id,
                    seller=listing.seller,
                ),
            )

        logger.info(
            "Listed '%s' #%d by %s at %d", listing.item_name, listing.listing_id, seller, listing.price
        )
        return listing

    def delist(self, seller: str, item_name: str) -> Listing:
        """
        Снятие листинга автором.

        Returns:
            Снятый Listing

        Raises:
            PermissionDenied: нет индекса владения / caller не автор листинга
            NotFound: item_name не выставлен
        """
        with self.ledger.transaction() as tx:
            seller = normalize_address(seller)
            if not self.ledger.storage.exists(seller, OWNERSHIP_RESOURCE):
                raise PermissionDenied("no_ownership_index", f"{seller} owns nothing")

            agent = self.vault.resolve_agent()
            registry = self._registry(agent)
            listing = self._require_listing(registry, item_name)
            if listing.seller != seller:
                raise PermissionDenied("not_seller", f"'{item_name}' is listed by {listing.seller}")

            registry.remove(item_name)
            self._index(seller).remove(item_name)

            self._emit(
                agent,
                EventKind.DELISTED,
                DelistedEvent(
                    ts_utc_ms=tx.ts_utc_ms,
                    item_name=listing.item_name,
                    price=listing.price,
                    created_at=listing.created_at,
                    listing_id=listing.listing_id,
                    seller=listing.seller,
                ),
            )

        logger.info("Delisted '%s' #%d by %s", item_name, listing.listing_id, seller)
        return listing

    def change_price(self, seller: str, item_name: str, new_price: int) -> Listing:
        """
        Смена цены активного листинга автором.

        Листинг заменяется новым снапшотом с тем же listing_id и created_at.

        Raises:
            NotFound: item_name не выставлен
            PermissionDenied: caller не автор листинга
            InvalidState: невалидная цена
        """
        with self.ledger.transaction() as tx:
            seller = normalize_address(seller)
            agent = self.vault.resolve_agent()
            registry = self._registry(agent)
            listing = self._require_listing(registry, item_name)
            if listing.seller != seller:
                raise PermissionDenied("not_seller", f"'{item_name}' is listed by {listing.seller}")

            try:
                updated = listing.with_price(new_price)
            except ValueError as e:
                raise InvalidState("invalid_listing", str(e)) from e
            registry.replace(updated)

            self._emit(
                agent,
                EventKind.PRICE_CHANGED,
                PriceChangedEvent(
                    ts_utc_ms=tx.ts_utc_ms,
                    item_name=item_name,
                    old_price=listing.price,
                    new_price=updated.price,
                    listing_id=updated.listing_id,
                    seller=seller,
                ),
            )

        logger.info("Price of '%s' changed %d -> %d", item_name, listing.price, updated.price)
        return updated

    def buy(self, buyer: str, item_name: str) -> OwnershipRecord:
        """
        Атомарная покупка выставленного предмета.

        Returns:
            Новая запись владения покупателя

        Raises:
            NotFound: item_name не выставлен / у продавца нет записи владения
            InvalidState: покупка собственного листинга
            InsufficientFunds: баланс покупателя меньше стоимости с комиссией
            AlreadyExists: у покупателя уже есть запись для item_name
        """
        with self.ledger.transaction() as tx:
            buyer = normalize_address(buyer)
            agent = self.vault.resolve_agent()
            registry = self._registry(agent)
            listing = self._require_listing(registry, item_name)
            seller = listing.seller

            if buyer == seller:
                raise InvalidState("self_purchase", f"{buyer} cannot buy own listing '{item_name}'")
            seller_index = self._index(seller)
            record = seller_index.get(item_name)
            if record is None or record.owner != seller:
                raise NotFound("ownership_not_found", f"{seller} holds no record for '{item_name}'")

            registry.remove(item_name)

            fee = self.config.platform_fee
            paid = listing.price * self.config.price_multiplier
            required = paid + fee
            balance = self.asset.balance(buyer)
            if balance < required:
                raise InsufficientFunds(
                    "balance_below_price", f"{buyer} holds {balance}, requires {required}"
                )

            self.asset.transfer(buyer, seller, paid)
            self._collect_fee(agent, buyer, fee)

            seller_index.remove(item_name)
            purchased = OwnershipRecord(item_name=item_name, amount=record.amount, owner=buyer)
            self._index(buyer, create=True).insert(purchased)

            self._emit(
                agent,
                EventKind.PURCHASED,
                PurchasedEvent(
                    ts_utc_ms=tx.ts_utc_ms,
                    item_name=item_name,
                    amount=purchased.amount,
                    price=listing.price,
                    paid=paid,
                    fee=fee,
                    listing_id=listing.listing_id,
                    seller=seller,
                    buyer=buyer,
                ),
            )

        logger.info("Sold '%s' #%d: %s -> %s for %d", item_name, listing.listing_id, seller, buyer, paid)
        return purchased

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_listing(self, item_name: str) -> Optional[Listing]:
        with self.ledger.reading():
            return self._registry(self.vault.resolve_agent()).get(item_name)

    def listings(self) -> List[Listing]:
        """Активные листинги в порядке listing_id."""
        with self.ledger.reading():
            return self._registry(self.vault.resolve_agent()).listings()

    def ownership_of(self, account: str) -> List[OwnershipRecord]:
        """Записи владения аккаунта (пусто если индекса нет)."""
        with self.ledger.reading() as storage:
            if not storage.exists(account, OWNERSHIP_RESOURCE):
                return []
            return storage.borrow(account, OWNERSHIP_RESOURCE).records()

    def platform_address(self) -> str:
        """Адрес агента маркетплейса (получатель комиссий)."""
        with self.ledger.reading():
            return self.vault.resolve_agent().address

    def events(self, kind: EventKind) -> Tuple[Event, ...]:
        with self.ledger.reading():
            return self._handles(self.vault.resolve_agent())[kind].events()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _registry(self, agent: Agent) -> ListingRegistry:
        return self.ledger.storage.borrow(agent.address, REGISTRY_RESOURCE)

    def _handles(self, agent: Agent) -> Dict[EventKind, EventHandle]:
        return self.ledger.storage.borrow(agent.address, MARKET_EVENTS_RESOURCE)

    def _index(self, account: str, create: bool = False) -> OwnershipIndex:
        storage = self.ledger.storage
        if not storage.exists(account, OWNERSHIP_RESOURCE):
            if not create:
                raise NotFound("ownership_not_found", f"{account} has no ownership index")
            storage.move_to(account, OWNERSHIP_RESOURCE, OwnershipIndex())
        return storage.borrow(account, OWNERSHIP_RESOURCE)

    @staticmethod
    def _require_listing(registry: ListingRegistry, item_name: str) -> Listing:
        listing = registry.get(item_name)
        if listing is None:
            raise NotFound("listing_not_found", f"'{item_name}' is not listed")
        return listing

    def _collect_fee(self, agent: Agent, payer: str, fee: int) -> None:
        """Перевод комиссии payer → агент (холдинг агента открывается при первой комиссии)."""
        if fee == 0:
            return
        self.asset.register(agent.address)
        self.asset.transfer(payer, agent.address, fee)

    def _emit(self, agent: Agent, kind: EventKind, event: Event) -> None:
        self.ledger.emit(self._handles(agent)[kind], event)


def _build_listing(**fields) -> Listing:
    try:
        return Listing(**fields)
    except ValueError as e:
        raise InvalidState("invalid_listing", str(e)) from e
