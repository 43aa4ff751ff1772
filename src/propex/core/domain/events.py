"""
Events — Модели событий журнала

Каждое внешне видимое изменение состояния фиксируется событием.
События immutable, несут полный снапшот описываемого состояния и
timestamp (UTC, миллисекунды). Сериализованная форма (model_dump с
mode="json") соответствует JSON Schema контрактам из propex.core.contracts.

Категории:
- Маркетплейс: Listed, Delisted, PriceChanged, Purchased
- Settlement asset: AssetInitialized, Minted, Transferred,
  FrozenToggled, Burned, Registered
"""

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

# =============================================================================
# ENUMS
# =============================================================================


class EventKind(str, Enum):
    """Категория события (одна категория = один append-only поток)."""

    LISTED = "Listed"
    DELISTED = "Delisted"
    PRICE_CHANGED = "PriceChanged"
    PURCHASED = "Purchased"
    ASSET_INITIALIZED = "AssetInitialized"
    MINTED = "Minted"
    TRANSFERRED = "Transferred"
    FROZEN_TOGGLED = "FrozenToggled"
    BURNED = "Burned"
    REGISTERED = "Registered"


MARKET_EVENT_KINDS = (
    EventKind.LISTED,
    EventKind.DELISTED,
    EventKind.PRICE_CHANGED,
    EventKind.PURCHASED,
)

ASSET_EVENT_KINDS = (
    EventKind.ASSET_INITIALIZED,
    EventKind.MINTED,
    EventKind.TRANSFERRED,
    EventKind.FROZEN_TOGGLED,
    EventKind.BURNED,
    EventKind.REGISTERED,
)


# =============================================================================
# BASE
# =============================================================================


class Event(BaseModel):
    """Базовое событие."""

    ts_utc_ms: int = Field(..., ge=0, description="Timestamp события (UTC, миллисекунды)")

    model_config = {"frozen": True}


# =============================================================================
# MARKET EVENTS
# =============================================================================


class ListedEvent(Event):
    kind: Literal["Listed"] = "Listed"
    item_name: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    created_at: int = Field(..., ge=0)
    listing_id: int = Field(..., ge=1)
    seller: str


class DelistedEvent(Event):
    kind: Literal["Delisted"] = "Delisted"
    item_name: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    created_at: int = Field(..., ge=0)
    listing_id: int = Field(..., ge=1)
    seller: str


class PriceChangedEvent(Event):
    kind: Literal["PriceChanged"] = "PriceChanged"
    item_name: str = Field(..., min_length=1)
    old_price: int = Field(..., gt=0)
    new_price: int = Field(..., gt=0)
    listing_id: int = Field(..., ge=1)
    seller: str


class PurchasedEvent(Event):
    kind: Literal["Purchased"] = "Purchased"
    item_name: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0, description="Количество единиц предмета")
    price: int = Field(..., gt=0, description="Цена листинга до множителя")
    paid: int = Field(..., gt=0, description="Фактически переведено продавцу")
    fee: int = Field(..., ge=0, description="Комиссия платформы")
    listing_id: int = Field(..., ge=1)
    seller: str
    buyer: str


# =============================================================================
# ASSET EVENTS
# =============================================================================


class AssetInitializedEvent(Event):
    kind: Literal["AssetInitialized"] = "AssetInitialized"
    asset_address: str
    name: str
    symbol: str
    decimals: int = Field(..., ge=0)
    monitor_supply: bool


class MintedEvent(Event):
    kind: Literal["Minted"] = "Minted"
    to: str
    amount: int = Field(..., gt=0)
    total_supply: Optional[int] = Field(None, ge=0)


class TransferredEvent(Event):
    kind: Literal["Transferred"] = "Transferred"
    sender: str
    to: str
    amount: int = Field(..., gt=0)


class FrozenToggledEvent(Event):
    kind: Literal["FrozenToggled"] = "FrozenToggled"
    target: str
    frozen: bool


class BurnedEvent(Event):
    kind: Literal["Burned"] = "Burned"
    target: str
    amount: int = Field(..., gt=0)
    total_supply: Optional[int] = Field(None, ge=0)


class RegisteredEvent(Event):
    kind: Literal["Registered"] = "Registered"
    account: str


MarketEvent = Union[ListedEvent, DelistedEvent, PriceChangedEvent, PurchasedEvent]

AssetEvent = Union[
    AssetInitializedEvent,
    MintedEvent,
    TransferredEvent,
    FrozenToggledEvent,
    BurnedEvent,
    RegisteredEvent,
]
