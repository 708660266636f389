import mmh3

from connection_bloom.constants import (
    BIP37_SEED_MULTIPLIER,
    LEVEL_SEED_MULTIPLIER,
    UINT32_MASK,
)


def as_bytes(data) -> bytes:
    """Normalize an item to the bytes that get hashed (str is UTF-8 encoded)"""
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, int):
        raise TypeError(f"cannot hash an int as a filter item: {data!r}")
    return bytes(data)


def seed_for(hash_func_index: int, level: int = 0) -> int:
    """BIP37 seed for the i-th hash function, offset by the filter level.

    Wraps to an unsigned 32-bit value, so negative levels and large indices
    land on the same seeds as any other implementation of the scheme.
    """
    return (hash_func_index * BIP37_SEED_MULTIPLIER
            + LEVEL_SEED_MULTIPLIER * level) & UINT32_MASK


def hash32(seed: int, data: bytes) -> int:
    """Unsigned 32-bit MurmurHash3 (x86 variant) of data under seed (str hashes as UTF-8)"""
    return mmh3.hash(data, seed & UINT32_MASK, signed=False)
