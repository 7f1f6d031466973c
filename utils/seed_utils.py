from __future__ import annotations

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
_MASK_32 = 0xFFFFFFFF
_MASK_31 = 0x7FFFFFFF


def fnv1a_32(data: bytes) -> int:
    h = FNV_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & _MASK_32
    return h


def hash_to_seed(a: str, b: str) -> int:
    """Stable, order-sensitive seed for a pair of identifiers.

    Not cryptographic; only used to make generative requests reproducible.
    The result fits the non-negative signed 31-bit range most generators expect.
    """
    return fnv1a_32(f"{a}|{b}".encode("utf-8")) & _MASK_31
