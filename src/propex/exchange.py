"""
PropertyExchange — точка входа для внешнего tooling

Связывает один Ledger, capability vault, settlement asset и маркетплейс
под одним адресом администратора. Каждый метод — отдельная транзакция;
ошибки (propex.core.errors) прерывают её целиком.
"""

from typing import Callable, List, Optional, Tuple

from propex.asset.coin import AssetConfig, SettlementAsset
from propex.core.domain.accounts import normalize_address
from propex.core.domain.events import Event, EventKind, MARKET_EVENT_KINDS
from propex.core.domain.listing import Listing, OwnershipRecord
from propex.ledger import Clock, Ledger
from propex.market.marketplace import MarketConfig, Marketplace
from propex.vault.capability import Agent, CapabilityVault, VaultConfig


class PropertyExchange:
    """
    Биржа: актив расчётов + маркетплейс.

    Args:
        admin: Адрес администратора развёртывания
        clock: Источник времени (UTC, миллисекунды)
        vault_config: Конфигурация vault
        asset_config: Конфигурация актива
        market_config: Конфигурация маркетплейса
    """

    def __init__(
        self,
        admin: str,
        clock: Optional[Clock] = None,
        vault_config: Optional[VaultConfig] = None,
        asset_config: Optional[AssetConfig] = None,
        market_config: Optional[MarketConfig] = None,
    ):
        self.admin = normalize_address(admin)
        self.ledger = Ledger(clock=clock)
        self.vault = CapabilityVault(self.ledger, self.admin, vault_config)
        self.asset = SettlementAsset(self.ledger, self.admin, asset_config)
        self.market = Marketplace(self.ledger, self.vault, self.asset, market_config)

    # -- marketplace -----------------------------------------------------------

    def initialize(self, caller: str) -> Agent:
        return self.vault.initialize(caller)

    def list(self, seller: str, price: int, item_name: str) -> Listing:
        return self.market.list(seller, price, item_name)

    def delist(self, seller: str, item_name: str) -> Listing:
        return self.market.delist(seller, item_name)

    def change_price(self, seller: str, item_name: str, new_price: int) -> Listing:
        return self.market.change_price(seller, item_name, new_price)

    def buy(self, buyer: str, item_name: str) -> OwnershipRecord:
        return self.market.buy(buyer, item_name)

    def get_listing(self, item_name: str) -> Optional[Listing]:
        return self.market.get_listing(item_name)

    def listings(self) -> List[Listing]:
        return self.market.listings()

    def ownership_of(self, account: str) -> List[OwnershipRecord]:
        return self.market.ownership_of(account)

    def platform_address(self) -> str:
        return self.market.platform_address()

    # -- settlement asset ------------------------------------------------------

    def initialize_asset(
        self, caller: str, name: str, symbol: str, decimals: int, monitor_supply: bool = True
    ) -> str:
        return self.asset.initialize_asset(caller, name, symbol, decimals, monitor_supply)

    def register(self, account: str) -> bool:
        return self.asset.register(account)

    def mint(self, caller: str, to: str, amount: int) -> None:
        self.asset.mint(caller, to, amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self.asset.transfer(sender, to, amount)

    def freeze(self, caller: str, target: str, freeze: bool) -> None:
        self.asset.freeze(caller, target, freeze)

    def burn(self, caller: str, amount: int) -> None:
        self.asset.burn(caller, amount)

    def burn_from(self, caller: str, target: str, amount: int) -> None:
        self.asset.burn_from(caller, target, amount)

    def balance(self, account: str) -> int:
        return self.asset.balance(account)

    def name(self) -> str:
        return self.asset.name()

    def symbol(self) -> str:
        return self.asset.symbol()

    def decimals(self) -> int:
        return self.asset.decimals()

    def total_supply(self) -> Optional[int]:
        return self.asset.total_supply()

    # -- event log -------------------------------------------------------------

    def events(self, kind: EventKind) -> Tuple[Event, ...]:
        """Журнал событий категории kind."""
        if kind in MARKET_EVENT_KINDS:
            return self.market.events(kind)
        return self.asset.events(kind)

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        """Подписка на закоммиченные события; возвращает функцию отписки."""
        return self.ledger.subscribe(callback)
