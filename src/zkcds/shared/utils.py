"""
Shared utility functions.
"""
import numpy as np
from typing import Dict, Optional, Union
import time

PhoneNumber = Union[str, bytes]


def phone_to_bytes(phone_number: PhoneNumber) -> bytes:
    """Phone numbers are opaque byte strings; text is UTF-8 encoded."""
    if isinstance(phone_number, str):
        return phone_number.encode("utf-8")
    return bytes(phone_number)


def generate_address_book(
    num_users: int,
    seed: Optional[int] = None,
    country_code: str = "+1",
    area_code: str = "555",
) -> Dict[str, str]:
    """
    Generate a synthetic phone number -> user ID map for testing.

    Args:
        num_users: Number of distinct phone numbers
        seed: Random seed for reproducibility
        country_code: Prefix for every number
        area_code: Three-digit area code

    Returns:
        Dict of E.164-style phone numbers to user IDs "user-<n>"
    """
    if num_users > 10 ** 7:
        raise ValueError("At most 10^7 numbers fit in one area code")

    rng = np.random.default_rng(seed)
    subscribers = rng.choice(10 ** 7, size=num_users, replace=False)

    return {
        f"{country_code}{area_code}{int(s):07d}": f"user-{i}"
        for i, s in enumerate(subscribers)
    }


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time

    @property
    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        if self.elapsed is None:
            if self.start_time is not None:
                return (time.perf_counter() - self.start_time) * 1000
            return 0.0
        return self.elapsed * 1000
