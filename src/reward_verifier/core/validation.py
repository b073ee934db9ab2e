"""
Reward Root Verifier - Boundary Validation

Shape checks for roots, accounts and amounts arriving from users, ledgers
and hosted files. The Merkle core assumes its inputs already passed these.
"""

import re

BYTES32_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
AMOUNT_RE = re.compile(r"^[0-9]+$")

ZERO_BYTES32 = "0x" + "00" * 32
MAX_UINT256 = 2**256 - 1


def with_hex_prefix(value: str) -> str:
    """Add a 0x prefix if the value does not carry one."""
    if value[:2] in ("0x", "0X"):
        return "0x" + value[2:]
    return f"0x{value}"


def is_bytes32(value: str) -> bool:
    """Return True if value is 0x followed by 64 hex characters (any case)."""
    return bool(BYTES32_RE.match(value))


def is_address(value: str) -> bool:
    """Return True if value is 0x followed by 40 hex characters (any case)."""
    return bool(ADDRESS_RE.match(value))


def is_uint256_string(value: str) -> bool:
    """Return True if value is a plain decimal string that fits in a uint256."""
    return bool(AMOUNT_RE.match(value)) and int(value) <= MAX_UINT256


def normalize_root(value: str) -> str:
    """
    Normalize a root identifier.

    Args:
        value: Root with or without 0x prefix, any case

    Returns:
        Lower-cased 0x-prefixed root

    Raises:
        ValueError: If the value is not 32 bytes of hex
    """
    root = with_hex_prefix(value.strip()).lower()
    if not is_bytes32(root):
        raise ValueError("root must be 64 hex characters")
    return root


def normalize_address(value: str) -> str:
    """
    Normalize an account or contract address.

    Raises:
        ValueError: If the value is not 20 bytes of hex
    """
    address = with_hex_prefix(value.strip()).lower()
    if not is_address(address):
        raise ValueError("address must be 40 hex characters")
    return address
