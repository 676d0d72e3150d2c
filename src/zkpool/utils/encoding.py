"""Encoding and decoding utilities."""

from typing import Optional

U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1


def bytes_to_hex(data: bytes, prefix: bool = False) -> str:
    """
    Convert bytes to a lowercase hexadecimal string.

    Args:
        data: Bytes to convert
        prefix: Prepend '0x' when True

    Returns:
        str: Hexadecimal string
    """
    encoded = data.hex()
    return "0x" + encoded if prefix else encoded


def hex_to_bytes(hex_str: str, length: Optional[int] = None) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)
        length: Required decoded length in bytes, if any

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid or has the wrong length
    """
    if not isinstance(hex_str, str):
        raise ValueError(f"Expected hex string, got {type(hex_str).__name__}")

    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    data = bytes.fromhex(hex_str)
    if length is not None and len(data) != length:
        raise ValueError(f"Expected {length} bytes, got {len(data)}")
    return data


def u64_le(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 little-endian bytes."""
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U64_MAX:
        raise ValueError(f"Value out of u64 range: {value!r}")
    return value.to_bytes(8, "little")


def u32_le(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 little-endian bytes."""
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U32_MAX:
        raise ValueError(f"Value out of u32 range: {value!r}")
    return value.to_bytes(4, "little")


def is_bytes32(value: object) -> bool:
    """Check whether a value is exactly 32 bytes."""
    return isinstance(value, bytes) and len(value) == 32


def short_hex(data: bytes, size: int = 8) -> str:
    """Shortened hex for log lines."""
    return data.hex()[: size * 2] + "..."
