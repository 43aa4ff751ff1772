"""
Capability Vault — делегированная подпись от имени resource-аккаунта

Модуль владеет resource-аккаунтом, у которого нет приватного ключа.
Право подписи (SignerCapability) хранится в ресурсе Vault на самом
resource-аккаунте и никогда не возвращается вызывающим: наружу выдаётся
только Agent, через который подсистемы действуют как самостоятельный
участник ledger (держатель реестра листингов, получатель комиссий).

initialize(caller):
1. caller == admin, иначе PermissionDenied (проверяется при каждом вызове)
2. Вывод адреса resource-аккаунта из (admin, seed)
3. Создание (если отсутствует) Vault, ListingRegistry и потоков событий маркетплейса

Повторный вызов администратором идемпотентен.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from propex.core.domain.accounts import (
    derive_resource_address,
    normalize_address,
    require_identity,
)
from propex.core.domain.events import MARKET_EVENT_KINDS
from propex.core.errors import NotFound
from propex.ledger import Ledger, new_handles
from propex.market.registry import ListingRegistry

logger = logging.getLogger(__name__)

# =============================================================================
# RESOURCE NAMES
# =============================================================================

VAULT_RESOURCE = "CapabilityVault"
REGISTRY_RESOURCE = "ListingRegistry"
MARKET_EVENTS_RESOURCE = "MarketEvents"

DEFAULT_VAULT_SEED = b"propex::market"


@dataclass(frozen=True)
class VaultConfig:
    """
    Конфигурация vault.

    - seed: фиксированный seed для вывода адреса resource-аккаунта
    """

    seed: bytes = DEFAULT_VAULT_SEED


# =============================================================================
# CAPABILITY
# =============================================================================


class SignerCapability:
    """
    Непрозрачный токен права подписи от имени одного адреса.

    Токен не копируется в API: операции получают только Agent.
    """

    __slots__ = ("_address",)

    def __init__(self, address: str):
        self._address = normalize_address(address)

    @property
    def address(self) -> str:
        return self._address

    def __repr__(self) -> str:
        return "SignerCapability(<opaque>)"


@dataclass(frozen=True)
class Agent:
    """
    Контекст подписи resource-аккаунта.

    Attributes:
        address: Адрес resource-аккаунта
    """

    address: str


class Vault:
    """Ресурс, хранящий SignerCapability на resource-аккаунте."""

    def __init__(self, capability: SignerCapability):
        self._capability = capability

    def agent(self) -> Agent:
        return Agent(address=self._capability.address)


def create_resource_account(source: str, seed: bytes) -> SignerCapability:
    """
    Создание resource-аккаунта и выдача права подписи.

    Адрес детерминирован: повторный вызов с теми же (source, seed)
    возвращает capability на тот же адрес.
    """
    return SignerCapability(derive_resource_address(source, seed))


# =============================================================================
# CAPABILITY VAULT
# =============================================================================


class CapabilityVault:
    """
    Подсистема, владеющая resource-аккаунтом маркетплейса.

    Args:
        ledger: Общий Ledger
        admin: Адрес администратора (единственная identity для initialize)
        config: Конфигурация vault
    """

    def __init__(
        self,
        ledger: Ledger,
        admin: str,
        config: Optional[VaultConfig] = None,
    ):
        self.ledger = ledger
        self.admin = normalize_address(admin)
        self.config = config or VaultConfig()
        self.address = derive_resource_address(self.admin, self.config.seed)

    def require_admin(self, caller: str) -> str:
        """
        Проверка identity администратора.

        Raises:
            PermissionDenied: Если caller не администратор
        """
        return require_identity(caller, self.admin, "not_admin")

    def initialize(self, caller: str) -> Agent:
        """
        Инициализация vault, реестра листингов и потоков событий.

        Returns:
            Agent resource-аккаунта

        Raises:
            PermissionDenied: Если caller не администратор
        """
        with self.ledger.transaction():
            self.require_admin(caller)
            storage = self.ledger.storage

            capability = create_resource_account(self.admin, self.config.seed)
            address = capability.address

            created = []
            if not storage.exists(address, VAULT_RESOURCE):
                storage.move_to(address, VAULT_RESOURCE, Vault(capability))
                created.append(VAULT_RESOURCE)
            if not storage.exists(address, REGISTRY_RESOURCE):
                storage.move_to(address, REGISTRY_RESOURCE, ListingRegistry())
                created.append(REGISTRY_RESOURCE)
            if not storage.exists(address, MARKET_EVENTS_RESOURCE):
                storage.move_to(address, MARKET_EVENTS_RESOURCE, new_handles(MARKET_EVENT_KINDS))
                created.append(MARKET_EVENTS_RESOURCE)

        if created:
            logger.info("Vault initialized at %s: %s", address, ", ".join(created))
        else:
            logger.debug("Vault already initialized at %s", address)
        return Agent(address=address)

    def is_initialized(self) -> bool:
        with self.ledger.reading() as storage:
            return storage.exists(self.address, VAULT_RESOURCE)

    def resolve_agent(self) -> Agent:
        """
        Восстановление контекста подписи из сохранённой capability.

        Raises:
            NotFound: Если vault не инициализирован
        """
        storage = self.ledger.storage
        if not storage.exists(self.address, VAULT_RESOURCE):
            raise NotFound("vault_not_initialized", f"no vault at {self.address}")
        vault: Vault = storage.borrow(self.address, VAULT_RESOURCE)
        return vault.agent()
