"""
Listing / OwnershipRecord — Модели листинга и записи владения

Immutable Pydantic модели. Листинг никогда не изменяется на месте:
любое изменение (например, смена цены) создаёт новый экземпляр.

Идентичность листинга — item_name (глобальное пространство имён),
listing_id — монотонный идентификатор, выданный агентом маркетплейса.
"""

from typing import Final

from pydantic import BaseModel, Field, field_validator

from .accounts import normalize_address

# =============================================================================
# CONSTANTS
# =============================================================================

ITEM_NAME_MAX_LENGTH: Final[int] = 128

# Количество единиц в записи владения (предметы неделимы)
UNIT_AMOUNT: Final[int] = 1


# =============================================================================
# LISTING
# =============================================================================


class Listing(BaseModel):
    """
    Активное предложение продажи именованного предмета.

    Инвариант: в реестре не более одного Listing на item_name.
    """

    item_name: str = Field(
        ..., min_length=1, max_length=ITEM_NAME_MAX_LENGTH, description="Имя предмета (ключ)"
    )
    price: int = Field(..., gt=0, description="Цена в базовых единицах (до множителя)")
    created_at: int = Field(..., ge=0, description="Время создания (UTC, миллисекунды)")
    listing_id: int = Field(..., ge=1, description="Монотонный идентификатор листинга")
    seller: str = Field(..., description="Адрес продавца")

    model_config = {"frozen": True}

    @field_validator("seller")
    @classmethod
    def validate_seller(cls, v: str) -> str:
        return normalize_address(v)

    def with_price(self, new_price: int) -> "Listing":
        """
        Новый снапшот листинга с другой ценой.

        listing_id и created_at сохраняются.
        """
        return Listing(
            item_name=self.item_name,
            price=new_price,
            created_at=self.created_at,
            listing_id=self.listing_id,
            seller=self.seller,
        )


# =============================================================================
# OWNERSHIP RECORD
# =============================================================================


class OwnershipRecord(BaseModel):
    """Запись владения предметом в индексе аккаунта."""

    item_name: str = Field(
        ..., min_length=1, max_length=ITEM_NAME_MAX_LENGTH, description="Имя предмета"
    )
    amount: int = Field(UNIT_AMOUNT, gt=0, description="Количество единиц")
    owner: str = Field(..., description="Адрес владельца")

    model_config = {"frozen": True}

    @field_validator("owner")
    @classmethod
    def validate_owner(cls, v: str) -> str:
        return normalize_address(v)
