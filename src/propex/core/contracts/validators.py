"""
JSON Schema Contract Validators

Модуль для валидации записей журнала событий согласно формальным JSON Schema
контрактам. Использует библиотеку jsonschema для проверки соответствия данных
схемам.

Схемы:
- market_event.json (Listed, Delisted, PriceChanged, Purchased)
- asset_event.json (AssetInitialized, Minted, Transferred, FrozenToggled, Burned, Registered)
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

from propex.core.domain.events import ASSET_EVENT_KINDS, MARKET_EVENT_KINDS, Event


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются вместе с пакетом в propex/core/contracts/schema/.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'market_event')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation самой схемы
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class MarketEventValidator(ContractValidator):
    """Валидатор для market_event контракта."""

    def __init__(self):
        super().__init__("market_event")


class AssetEventValidator(ContractValidator):
    """Валидатор для asset_event контракта."""

    def __init__(self):
        super().__init__("asset_event")


# Валидаторы без состояния: один экземпляр на процесс
_MARKET_EVENT_VALIDATOR = MarketEventValidator()
_ASSET_EVENT_VALIDATOR = AssetEventValidator()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_market_event(data: Dict[str, Any]) -> None:
    """
    Валидация записи market_event.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    _MARKET_EVENT_VALIDATOR.validate(data)


def validate_asset_event(data: Dict[str, Any]) -> None:
    """
    Валидация записи asset_event.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    _ASSET_EVENT_VALIDATOR.validate(data)


def validate_event(event: Event) -> Dict[str, Any]:
    """
    Валидация события по контракту его категории.

    Args:
        event: Pydantic модель события

    Returns:
        Сериализованная (JSON-совместимая) форма события

    Raises:
        ValidationError: Если сериализованное событие нарушает контракт
        ValueError: Если категория события неизвестна
    """
    data = event.model_dump(mode="json")
    kind = data.get("kind")
    if kind in {k.value for k in MARKET_EVENT_KINDS}:
        validate_market_event(data)
    elif kind in {k.value for k in ASSET_EVENT_KINDS}:
        validate_asset_event(data)
    else:
        raise ValueError(f"Unknown event kind: {kind!r}")
    return data
