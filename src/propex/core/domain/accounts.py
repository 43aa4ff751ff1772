"""
Accounts — Адреса аккаунтов и resource-аккаунты

Адрес — нормализованная hex-строка: префикс '0x' + 64 hex-символа в нижнем
регистре. Короткие формы ('0x1', '0xA11CE') дополняются нулями слева.

Resource-аккаунт — аккаунт, адрес которого детерминированно выводится из
адреса-источника и seed, и у которого нет приватного ключа: подписывать
от его имени может только держатель SignerCapability.

    address = sha3_256(source_bytes || seed || RESOURCE_ACCOUNT_SCHEME)
"""

import hashlib
import re
from typing import Final

from propex.core.errors import PermissionDenied

# =============================================================================
# CONSTANTS
# =============================================================================

ADDRESS_LENGTH_BYTES: Final[int] = 32

# Байт схемы, отделяющий resource-адреса от адресов, выведенных из ключей
RESOURCE_ACCOUNT_SCHEME: Final[bytes] = b"\xff"

_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]{1,64}$")


# =============================================================================
# ADDRESSES
# =============================================================================


def normalize_address(address: str) -> str:
    """
    Нормализация адреса аккаунта.

    Args:
        address: Адрес в hex-форме, с префиксом '0x' или без

    Returns:
        Адрес в канонической форме '0x' + 64 hex (lower-case)

    Raises:
        ValueError: Если строка не является hex-адресом
    """
    if not isinstance(address, str) or not _HEX_RE.match(address):
        raise ValueError(f"Invalid account address: {address!r}")
    digits = address[2:] if address.lower().startswith("0x") else address
    return "0x" + digits.lower().rjust(ADDRESS_LENGTH_BYTES * 2, "0")


def address_bytes(address: str) -> bytes:
    """Байтовое представление нормализованного адреса (32 байта)."""
    return bytes.fromhex(normalize_address(address)[2:])


def derive_resource_address(source: str, seed: bytes) -> str:
    """
    Детерминированный вывод адреса resource-аккаунта.

    Args:
        source: Адрес-источник (администратор, создающий аккаунт)
        seed: Фиксированный seed подсистемы

    Returns:
        Нормализованный адрес resource-аккаунта
    """
    digest = hashlib.sha3_256(address_bytes(source) + seed + RESOURCE_ACCOUNT_SCHEME)
    return "0x" + digest.hexdigest()


def require_identity(caller: str, expected: str, reason: str) -> str:
    """
    Проверка identity вызывающего.

    Args:
        caller: Адрес вызывающего
        expected: Ожидаемый адрес
        reason: Код причины для PermissionDenied

    Returns:
        Нормализованный адрес вызывающего

    Raises:
        PermissionDenied: Если адреса не совпадают
    """
    caller = normalize_address(caller)
    if caller != normalize_address(expected):
        raise PermissionDenied(reason, f"caller {caller} is not {normalize_address(expected)}")
    return caller
