"""Numeric verification codes and human-facing account codes."""
import logging
import random
import string
from typing import Callable

from rollcall.services.exceptions import ConflictError

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 50


def generate_code(length: int) -> str:
    """Uniformly sampled numeric string of exactly `length` digits (leading zeros allowed)."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(random.choices(string.digits, k=length))


def generate_account_code(prefix: str, exists: Callable[[str], bool], digits: int = 6) -> str:
    """Sample `prefix` + `digits` numbers until `exists` says the code is free.

    The numeric part never starts with 0 so every code has the same width when read as a number.
    """
    low = 10 ** (digits - 1)
    high = 10**digits - 1
    for _ in range(MAX_CODE_ATTEMPTS):
        candidate = f"{prefix}{random.randint(low, high)}"
        if not exists(candidate):
            return candidate
    logger.error("Account code space exhausted for prefix=%s after %d attempts", prefix, MAX_CODE_ATTEMPTS)
    raise ConflictError("Could not allocate an account code. Please try again.")
