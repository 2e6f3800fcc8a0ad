"""Utility functions for validation and unit conversion"""

import re
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, List, Optional, Tuple

from eth_utils import is_hex_address, to_normalized_address
from loguru import logger

from .errors import InputValidationError

ETH_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

# 1 ETH = 10**18 wei
WEI_DECIMALS = 18


def validate_ethereum_address(address: str) -> Tuple[bool, Optional[str]]:
    """
    Validate Ethereum address format

    Returns:
        (is_valid, lowercase address or None)
    """
    if not address or not isinstance(address, str):
        return False, None

    address = address.strip()

    # Fixed length, hex only
    if not ETH_ADDRESS_PATTERN.match(address):
        return False, None

    if not is_hex_address(address):
        return False, None

    return True, to_normalized_address(address)


def normalize_address(address: Any) -> str:
    """Canonical lowercase form of an address, or InputValidationError"""
    is_valid, normalized = validate_ethereum_address(address)
    if not is_valid:
        raise InputValidationError(f"Invalid address: {address!r}")
    return normalized


def normalize_addresses(addresses: Iterable[Any]) -> List[str]:
    """Validate and canonicalise, dropping case-insensitive duplicates, keeping order"""
    seen = set()
    result = []
    for address in addresses:
        normalized = normalize_address(address)
        if normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


def shorten_address(address: str) -> str:
    """0x1234...abcd"""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def wei_to_decimal(raw: Any, decimals: int = WEI_DECIMALS) -> Optional[str]:
    """
    Convert an integer amount in the smallest on-chain unit to a decimal string.

    The conversion is an exponent shift on an integer, so it is exact for any
    size of input. Returns None for anything that is not a non-negative integer.
    """
    if raw is None or isinstance(raw, (bool, float)):
        return None
    try:
        units = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not units.is_finite() or units < 0 or units != units.to_integral_value():
        return None

    with localcontext() as ctx:
        ctx.prec = max(78, len(str(raw)) + decimals)
        value = units.scaleb(-decimals)
        if value == 0:
            return "0"
        return format(value.normalize(), "f")


def decimal_string(value: Any) -> Optional[str]:
    """Normalise a provider-supplied decimal amount to a plain decimal string"""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug(f"Unparseable decimal amount: {value!r}")
        return None
    if not parsed.is_finite() or parsed < 0:
        return None
    if parsed == 0:
        return "0"
    return format(parsed.normalize(), "f")


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitize user input to prevent injection attacks

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text or not isinstance(text, str):
        return ""

    # Remove null bytes
    text = text.replace('\x00', '')

    # Remove script tags and common XSS patterns
    text = re.sub(r'<script[^>]*>.*?</script>', '', text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r'<iframe[^>]*>.*?</iframe>', '', text, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r'javascript:', '', text, flags=re.IGNORECASE)
    text = re.sub(r'on\w+\s*=', '', text, flags=re.IGNORECASE)

    # Truncate to max length
    if len(text) > max_length:
        text = text[:max_length]
        logger.warning(f"Input truncated to {max_length} characters")

    # Remove control characters except newlines and tabs
    text = re.sub(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]', '', text)

    return text.strip()
