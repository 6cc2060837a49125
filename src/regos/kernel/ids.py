"""
ID generation using UUIDv7 (time-ordered UUIDs)

Ids carry a short kind prefix ("reg_", "sub_", "usr_") so a stray id in a log
line tells you what it refers to.
"""

import secrets
import time
from typing import Protocol


class IdFactory(Protocol):
    """Protocol for ID generation strategies"""

    def generate(self, prefix: str = "") -> str:
        """Generate a new unique ID"""
        ...


def generate_id(prefix: str = "") -> str:
    """
    Generate a UUIDv7-like identifier (time-ordered UUID)

    First 48 bits: Unix timestamp in milliseconds, remaining bits random.

    Args:
        prefix: Optional kind prefix, joined with an underscore

    Returns:
        Sortable id string (e.g., "reg_01908e9a-3b87-7000-8000-123456789abc")
    """
    timestamp_48 = int(time.time() * 1000) & 0xFFFFFFFFFFFF

    rand_12 = secrets.randbits(12)
    rand_62 = secrets.randbits(62)

    # Version 7 (0111) in bits 48-51, variant (10) in bits 64-65
    time_high = (timestamp_48 >> 32) & 0xFFFF
    time_mid = (timestamp_48 >> 16) & 0xFFFF
    time_low_and_version = ((timestamp_48 & 0xFFFF) << 16) | (0x7000 | rand_12)
    clock_seq_and_variant = 0x8000 | ((rand_62 >> 48) & 0x3FFF)
    node = rand_62 & 0xFFFFFFFFFFFF

    uuid_str = (
        f"{time_high:04x}{time_mid:04x}-"
        f"{(time_low_and_version >> 16) & 0xFFFF:04x}-"
        f"{time_low_and_version & 0xFFFF:04x}-"
        f"{clock_seq_and_variant:04x}-"
        f"{node:012x}"
    )

    return f"{prefix}_{uuid_str}" if prefix else uuid_str


class DefaultIdFactory:
    """Default ID factory using UUIDv7-like generation"""

    def generate(self, prefix: str = "") -> str:
        return generate_id(prefix)


class SequentialIdFactory:
    """
    Predictable ids for tests and fixtures

    Produces "reg_1", "reg_2", ... with one counter per prefix.
    """

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}

    def generate(self, prefix: str = "") -> str:
        self._counters[prefix] = self._counters.get(prefix, 0) + 1
        number = self._counters[prefix]
        return f"{prefix}_{number}" if prefix else str(number)
