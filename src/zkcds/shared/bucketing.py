"""
Prefix bucketing of SHA-256 digests.

The index builder, the server at query time and the client all derive a
bucket from the top N bits of h = SHA-256(phone). The same N must be
used everywhere.
"""
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from zkcds.shared.config import HASH_BITS


def bucket_prefix(h: bytes, n_bits: int) -> int:
    """
    Top n_bits of h as an unsigned integer.

    Args:
        h: 32-byte digest
        n_bits: Prefix width, 0..256 (0 always yields bucket 0)

    Returns:
        Integer in [0, 2^n_bits)
    """
    if not 0 <= n_bits <= HASH_BITS:
        raise ValueError(f"n_bits must be between 0 and {HASH_BITS}")
    if len(h) * 8 != HASH_BITS:
        raise ValueError("Expected a 256-bit digest")
    return int.from_bytes(h, "big") >> (HASH_BITS - n_bits)


def prefix_space(n_bits: int) -> int:
    return 1 << n_bits


def expected_bucket_size(map_size: int, n_bits: int) -> float:
    """Expected number of entries returned per query: map_size / 2^N."""
    return map_size / prefix_space(n_bits)


def anonymity_set_size(n_bits: int, phone_space: int) -> float:
    """
    Phone numbers consistent with one observed prefix.

    The server sees only the prefix, so a query is hidden among
    phone_space / 2^N possible numbers. For N close to
    log2(phone_space) this drops towards a single number.
    """
    return phone_space / prefix_space(n_bits)


@dataclass
class BucketStats:
    """Realised bucket size distribution of an index."""
    prefix_bits: int
    num_entries: int
    occupied_buckets: int
    mean_size: float
    max_size: int
    expected_size: float

    def __str__(self) -> str:
        return (
            f"Buckets (N={self.prefix_bits})\n"
            f"  Entries: {self.num_entries}\n"
            f"  Occupied buckets: {self.occupied_buckets}\n"
            f"  Mean occupied size: {self.mean_size:.2f}\n"
            f"  Max size: {self.max_size}\n"
            f"  Expected size: {self.expected_size:.4f}"
        )


def bucket_stats(sizes: Iterable[int], prefix_bits: int) -> BucketStats:
    """
    Summarise occupied bucket sizes.

    Args:
        sizes: Size of every non-empty bucket
        prefix_bits: Prefix width the buckets were built with
    """
    arr = np.fromiter(sizes, dtype=np.int64)
    total = int(arr.sum()) if arr.size else 0

    return BucketStats(
        prefix_bits=prefix_bits,
        num_entries=total,
        occupied_buckets=int(arr.size),
        mean_size=float(arr.mean()) if arr.size else 0.0,
        max_size=int(arr.max()) if arr.size else 0,
        expected_size=expected_bucket_size(total, prefix_bits),
    )
