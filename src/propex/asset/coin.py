"""
Settlement Asset — единый fungible актив расчётов ("property coin")

Актив регистрируется на втором resource-аккаунте модуля. Там же хранятся
административные capabilities (mint / burn / freeze) и шесть потоков
событий. Capabilities существуют ровно в одном месте и не выдаются наружу.

Холдинги (CoinStore) хранятся на аккаунтах держателей:
- register — открытие нулевого холдинга (идемпотентно)
- frozen холдинг не принимает и не отдаёт средства через transfer / mint
- burn_from — административный путь, работает и для frozen холдинга

Административные операции (initialize_asset, mint, freeze, burn, burn_from)
доступны только администратору. mint / freeze / burn дополнительно
предъявляют соответствующую capability, привязанную к адресу актива.

При monitor_supply=True поддерживается инвариант:
    total_supply == Σ balance(account)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Final, Optional, Tuple

from pydantic import BaseModel, Field

from propex.core.domain.accounts import normalize_address, require_identity
from propex.core.domain.events import (
    ASSET_EVENT_KINDS,
    AssetInitializedEvent,
    BurnedEvent,
    Event,
    EventKind,
    FrozenToggledEvent,
    MintedEvent,
    RegisteredEvent,
    TransferredEvent,
)
from propex.core.errors import (
    AlreadyExists,
    InsufficientFunds,
    InvalidState,
    NotFound,
    PermissionDenied,
)
from propex.ledger import EventHandle, Ledger, new_handles
from propex.vault.capability import create_resource_account

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_ASSET_SEED: Final[bytes] = b"propex::coin"

NAME_MAX_LENGTH: Final[int] = 32
SYMBOL_MAX_LENGTH: Final[int] = 10
DECIMALS_MAX: Final[int] = 32

ASSET_INFO_RESOURCE = "AssetInfo"
CAPABILITIES_RESOURCE = "AssetCapabilities"
ASSET_EVENTS_RESOURCE = "AssetEvents"
HOLDING_RESOURCE = "CoinStore"


@dataclass(frozen=True)
class AssetConfig:
    """
    Конфигурация settlement asset.

    - seed: seed для вывода адреса resource-аккаунта актива
    """

    seed: bytes = DEFAULT_ASSET_SEED


# =============================================================================
# RESOURCES
# =============================================================================


class AssetMetadata(BaseModel):
    """Метаданные актива (immutable)."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, description="Имя актива")
    symbol: str = Field(..., min_length=1, max_length=SYMBOL_MAX_LENGTH, description="Тикер")
    decimals: int = Field(..., ge=0, le=DECIMALS_MAX, description="Знаков после запятой")
    monitor_supply: bool = Field(..., description="Отслеживать total supply")

    model_config = {"frozen": True}


class AssetInfo:
    """Ресурс актива: метаданные и текущий supply (None если не отслеживается)."""

    def __init__(self, metadata: AssetMetadata):
        self.metadata = metadata
        self.supply: Optional[int] = 0 if metadata.monitor_supply else None


class _Capability:
    """Право на административное действие, привязанное к адресу актива."""

    __slots__ = ("_asset",)

    def __init__(self, asset: str):
        self._asset = asset

    def authorizes(self, asset: str) -> bool:
        return self._asset == normalize_address(asset)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(<opaque>)"


class MintCapability(_Capability):
    pass


class BurnCapability(_Capability):
    pass


class FreezeCapability(_Capability):
    pass


@dataclass(frozen=True)
class AssetCapabilities:
    """Набор административных capabilities (ровно один на развёртывание)."""

    mint: MintCapability
    burn: BurnCapability
    freeze: FreezeCapability


@dataclass
class CoinStore:
    """Холдинг актива на аккаунте держателя."""

    balance: int = 0
    frozen: bool = False


# =============================================================================
# SETTLEMENT ASSET
# =============================================================================


class SettlementAsset:
    """
    Ledger единого актива расчётов.

    Args:
        ledger: Общий Ledger
        admin: Адрес администратора
        config: Конфигурация актива
    """

    def __init__(self, ledger: Ledger, admin: str, config: Optional[AssetConfig] = None):
        self.ledger = ledger
        self.admin = normalize_address(admin)
        self.config = config or AssetConfig()
        self.address = create_resource_account(self.admin, self.config.seed).address

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    def initialize_asset(
        self,
        caller: str,
        name: str,
        symbol: str,
        decimals: int,
        monitor_supply: bool = True,
    ) -> str:
        """
        Регистрация актива.

        Args:
            caller: Identity вызывающего (должен быть администратор)
            name: Имя актива (1..32 символа)
            symbol: Тикер (1..10 символов)
            decimals: Знаков после запятой (0..32)
            monitor_supply: Отслеживать total supply

        Returns:
            Адрес resource-аккаунта актива

        Raises:
            PermissionDenied: Если caller не администратор
            AlreadyExists: Если capabilities уже созданы
            InvalidState: Если метаданные невалидны
        """
        with self.ledger.transaction() as tx:
            require_identity(caller, self.admin, "not_admin")
            storage = self.ledger.storage

            if storage.exists(self.address, CAPABILITIES_RESOURCE):
                raise AlreadyExists("capabilities_exist", f"asset already initialized at {self.address}")

            try:
                metadata = AssetMetadata(
                    name=name, symbol=symbol, decimals=decimals, monitor_supply=monitor_supply
                )
            except ValueError as e:
                raise InvalidState("invalid_metadata", str(e)) from e

            storage.move_to(self.address, ASSET_INFO_RESOURCE, AssetInfo(metadata))
            storage.move_to(
                self.address,
                CAPABILITIES_RESOURCE,
                AssetCapabilities(
                    mint=MintCapability(self.address),
                    burn=BurnCapability(self.address),
                    freeze=FreezeCapability(self.address),
                ),
            )
            storage.move_to(self.address, ASSET_EVENTS_RESOURCE, new_handles(ASSET_EVENT_KINDS))

            self._emit(
                EventKind.ASSET_INITIALIZED,
                AssetInitializedEvent(
                    ts_utc_ms=tx.ts_utc_ms,
                    asset_address=self.address,
                    name=metadata.name,
                    symbol=metadata.symbol,
                    decimals=metadata.decimals,
                    monitor_supply=metadata.monitor_supply,
                ),
            )
            self.register(self.admin)

        logger.info("Asset %s (%s) initialized at %s", name, symbol, self.address)
        return self.address

    def mint(self, caller: str, to: str, amount: int) -> None:
        """
        Эмиссия: увеличение supply и зачисление на холдинг `to`.

        Raises:
            PermissionDenied: Если caller не администратор
            NotFound: Если холдинг `to` не открыт
            InvalidState: Если amount <= 0 или холдинг frozen
        """
        with self.ledger.transaction() as tx:
            require_identity(caller, self.admin, "not_admin")
            self._use(self._capabilities().mint)
            _require_positive(amount)
            to = normalize_address(to)

            store = self._holding(to)
            _require_not_frozen(store, to)
            store.balance += amount
            supply = self._adjust_supply(amount)

            self._emit(
                EventKind.MINTED,
                MintedEvent(ts_utc_ms=tx.ts_utc_ms, to=to, amount=amount, total_supply=supply),
            )
        logger.info("Minted %d to %s", amount, to)

    def freeze(self, caller: str, target: str, freeze: bool) -> None:
        """
        Переключение frozen-флага холдинга.

        Raises:
            PermissionDenied: Если caller не администратор
            NotFound: Если холдинг не открыт
        """
        with self.ledger.transaction() as tx:
            require_identity(caller, self.admin, "not_admin")
            self._use(self._capabilities().freeze)
            target = normalize_address(target)

            store = self._holding(target)
            store.frozen = bool(freeze)

            self._emit(
                EventKind.FROZEN_TOGGLED,
                FrozenToggledEvent(ts_utc_ms=tx.ts_utc_ms, target=target, frozen=store.frozen),
            )
        logger.info("Holding %s %s", target, "frozen" if freeze else "unfrozen")

    def burn(self, caller: str, amount: int) -> None:
        """
        Сжигание с собственного холдинга вызывающего.

        Путь доступен только администратору (сжигает свой холдинг).
        """
        with self.ledger.transaction():
            caller = require_identity(caller, self.admin, "not_admin")
            self._burn(caller, amount)

    def burn_from(self, caller: str, target: str, amount: int) -> None:
        """
        Административное сжигание с холдинга `target`.

        Raises:
            PermissionDenied: Если caller не администратор
            NotFound: Если холдинг не открыт
            InsufficientFunds: Если баланс меньше amount
        """
        with self.ledger.transaction():
            require_identity(caller, self.admin, "not_admin")
            self._burn(normalize_address(target), amount)

    def _burn(self, target: str, amount: int) -> None:
        self._use(self._capabilities().burn)
        _require_positive(amount)
        store = self._holding(target)
        if store.balance < amount:
            raise InsufficientFunds(
                "balance_below_burn", f"{target} holds {store.balance}, burn {amount}"
            )
        store.balance -= amount
        supply = self._adjust_supply(-amount)

        self._emit(
            EventKind.BURNED,
            BurnedEvent(
                ts_utc_ms=self.ledger.now_ms(), target=target, amount=amount, total_supply=supply
            ),
        )
        logger.info("Burned %d from %s", amount, target)

    # =========================================================================
    # HOLDERS
    # =========================================================================

    def register(self, account: str) -> bool:
        """
        Открытие нулевого холдинга.

        Returns:
            True если холдинг создан, False если уже существовал
        """
        with self.ledger.transaction() as tx:
            self._info()
            account = normalize_address(account)
            storage = self.ledger.storage
            if storage.exists(account, HOLDING_RESOURCE):
                return False

            storage.move_to(account, HOLDING_RESOURCE, CoinStore())
            self._emit(
                EventKind.REGISTERED, RegisteredEvent(ts_utc_ms=tx.ts_utc_ms, account=account)
            )
        logger.debug("Registered holding for %s", account)
        return True

    def transfer(self, sender: str, to: str, amount: int) -> None:
        """
        Перевод собственного баланса `sender` на холдинг `to`.

        Raises:
            NotFound: Если один из холдингов не открыт
            InsufficientFunds: Если баланс sender меньше amount
            InvalidState: Если amount <= 0 или холдинг frozen
        """
        with self.ledger.transaction() as tx:
            self._info()
            _require_positive(amount)
            sender = normalize_address(sender)
            to = normalize_address(to)

            source = self._holding(sender)
            target = self._holding(to)
            _require_not_frozen(source, sender)
            _require_not_frozen(target, to)
            if source.balance < amount:
                raise InsufficientFunds(
                    "balance_below_transfer", f"{sender} holds {source.balance}, transfer {amount}"
                )

            source.balance -= amount
            target.balance += amount

            self._emit(
                EventKind.TRANSFERRED,
                TransferredEvent(ts_utc_ms=tx.ts_utc_ms, sender=sender, to=to, amount=amount),
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def balance(self, account: str) -> int:
        """Баланс аккаунта (0 если холдинг не открыт)."""
        with self.ledger.reading() as storage:
            self._info()
            account = normalize_address(account)
            if not storage.exists(account, HOLDING_RESOURCE):
                return 0
            return storage.borrow(account, HOLDING_RESOURCE).balance

    def name(self) -> str:
        with self.ledger.reading():
            return self._info().metadata.name

    def symbol(self) -> str:
        with self.ledger.reading():
            return self._info().metadata.symbol

    def decimals(self) -> int:
        with self.ledger.reading():
            return self._info().metadata.decimals

    def total_supply(self) -> Optional[int]:
        """Текущий supply (None если monitor_supply=False)."""
        with self.ledger.reading():
            return self._info().supply

    def is_initialized(self) -> bool:
        with self.ledger.reading() as storage:
            return storage.exists(self.address, CAPABILITIES_RESOURCE)

    def is_registered(self, account: str) -> bool:
        with self.ledger.reading() as storage:
            return storage.exists(account, HOLDING_RESOURCE)

    def is_frozen(self, account: str) -> bool:
        with self.ledger.reading() as storage:
            if not storage.exists(account, HOLDING_RESOURCE):
                return False
            return storage.borrow(account, HOLDING_RESOURCE).frozen

    def events(self, kind: EventKind) -> Tuple[Event, ...]:
        """Журнал событий актива одной категории."""
        with self.ledger.reading():
            return self._handles()[kind].events()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _info(self) -> AssetInfo:
        if not self.ledger.storage.exists(self.address, ASSET_INFO_RESOURCE):
            raise NotFound("asset_not_initialized", f"no asset at {self.address}")
        return self.ledger.storage.borrow(self.address, ASSET_INFO_RESOURCE)

    def _capabilities(self) -> AssetCapabilities:
        if not self.ledger.storage.exists(self.address, CAPABILITIES_RESOURCE):
            raise NotFound("asset_not_initialized", f"no asset at {self.address}")
        return self.ledger.storage.borrow(self.address, CAPABILITIES_RESOURCE)

    def _use(self, capability: _Capability) -> None:
        if not capability.authorizes(self.address):
            raise PermissionDenied(
                "capability_mismatch", f"{capability!r} is not bound to {self.address}"
            )

    def _handles(self) -> Dict[EventKind, EventHandle]:
        self._info()
        return self.ledger.storage.borrow(self.address, ASSET_EVENTS_RESOURCE)

    def _holding(self, account: str) -> CoinStore:
        if not self.ledger.storage.exists(account, HOLDING_RESOURCE):
            raise NotFound("holding_not_registered", f"{account} has no holding")
        return self.ledger.storage.borrow(account, HOLDING_RESOURCE)

    def _adjust_supply(self, delta: int) -> Optional[int]:
        info = self._info()
        if info.supply is not None:
            info.supply += delta
        return info.supply

    def _emit(self, kind: EventKind, event: Event) -> None:
        self.ledger.emit(self._handles()[kind], event)


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidState("invalid_amount", f"amount must be a positive integer, got {amount!r}")


def _require_not_frozen(store: CoinStore, account: str) -> None:
    if store.frozen:
        raise InvalidState("holding_frozen", f"holding of {account} is frozen")
