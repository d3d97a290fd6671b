"""Hash slot computation for cluster key routing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

NUM_SLOTS = 16384

_POLYNOMIAL = 0x1021


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ _POLYNOMIAL) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
        table.append(crc)
    return tuple(table)


_CRC16_TABLE = _build_table()

KeyLike = Union[str, bytes, bytearray]


def _to_bytes(value: KeyLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def crc16(data: KeyLike) -> int:
    """Return the CRC16 (XMODEM variant) checksum of ``data``."""
    crc = 0
    for byte in _to_bytes(data):
        crc = ((crc << 8) & 0xFFFF) ^ _CRC16_TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc


def extract_hash_tag(key: KeyLike) -> KeyLike:
    """Return the part of ``key`` inside the first ``{...}``, or the whole key.

    An empty tag or a missing closing brace means the whole key is hashed.
    """
    open_brace: KeyLike = "{" if isinstance(key, str) else b"{"
    close_brace: KeyLike = "}" if isinstance(key, str) else b"}"
    start = key.find(open_brace)
    if start == -1:
        return key
    end = key.find(close_brace, start + 1)
    if end == -1:
        return key
    tag = key[start + 1:end]
    if not tag:
        return key
    return tag


def key_hash_slot(key: KeyLike) -> int:
    """Return the hash slot (0..16383) that ``key`` maps to."""
    return crc16(extract_hash_tag(key)) % NUM_SLOTS


def keys_in_same_slot(keys: Iterable[KeyLike]) -> bool:
    """Return True if every key maps to the same hash slot."""
    slots = {key_hash_slot(key) for key in keys}
    return len(slots) <= 1


@dataclass(frozen=True)
class SlotRange:
    """An inclusive, contiguous range of hash slots."""

    start: int
    end: int

    def contains(self, slot: int) -> bool:
        return self.start <= slot <= self.end

    def size(self) -> int:
        return self.end - self.start + 1


def build_slot_ranges(slots: Iterable[int]) -> list[SlotRange]:
    """Collapse slot numbers into sorted contiguous ranges."""
    ordered = sorted(slots)
    if not ordered:
        return []

    ranges: list[SlotRange] = []
    start = end = ordered[0]
    for slot in ordered[1:]:
        if slot == end + 1:
            end = slot
        else:
            ranges.append(SlotRange(start, end))
            start = end = slot
    ranges.append(SlotRange(start, end))
    return ranges