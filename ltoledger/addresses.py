"""
Principal handling.

Principals are plain strings. Anything that looks like a 20-byte hex address
is normalised to its EIP-55 checksum form so that the same account cannot
hold two balances under differently-cased keys.
"""

from eth_utils import is_hex_address, to_checksum_address

from .constants import ZERO_ADDRESS
from .exceptions import InvalidConfigurationError


def normalize_address(address: str) -> str:
    """Return the canonical form of *address*."""
    if not isinstance(address, str) or not address:
        raise InvalidConfigurationError(f"Invalid principal: {address!r}")
    if address.startswith('0x') and len(address) == 42 and is_hex_address(address):
        return to_checksum_address(address)
    return address


def is_null_address(address) -> bool:
    if address is None or address == "":
        return True
    return isinstance(address, str) and address.lower() == ZERO_ADDRESS


def short_address(address: str) -> str:
    """Shortened form for log lines and CLI tables."""
    if len(address) > 20:
        return f"{address[:10]}...{address[-8:]}"
    return address
