"""CPU flag bits and 16-bit register pairs."""

from __future__ import annotations

import enum


class Flag(enum.IntFlag):
    """Bits of the F register (ZNHC0000)."""

    Z = 0x80
    N = 0x40
    H = 0x20
    C = 0x10


class RegisterPair:
    """A 16-bit register that can also be used as two 8-bit halves."""

    __slots__ = ("_word",)

    def __init__(self, word: int = 0) -> None:
        self._word = word & 0xFFFF

    @property
    def word(self) -> int:
        return self._word

    @word.setter
    def word(self, value: int) -> None:
        self._word = value & 0xFFFF

    @property
    def high(self) -> int:
        return self._word >> 8

    @high.setter
    def high(self, value: int) -> None:
        self._word = ((value & 0xFF) << 8) | (self._word & 0x00FF)

    @property
    def low(self) -> int:
        return self._word & 0xFF

    @low.setter
    def low(self, value: int) -> None:
        self._word = (self._word & 0xFF00) | (value & 0xFF)

    def __int__(self) -> int:
        return self._word

    def __index__(self) -> int:
        return self._word

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RegisterPair):
            return self._word == other._word
        if isinstance(other, int):
            return self._word == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._word)

    def __repr__(self) -> str:
        return f"RegisterPair({self._word:#06x})"