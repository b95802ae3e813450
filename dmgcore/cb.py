"""Execution of the 0xCB-prefixed rotate, shift and bit instructions.

The CPU object handed to :func:`execute_cb` must provide ``read_r8(index)``,
``write_r8(index, value)`` and an integer ``f`` attribute holding the flag
register. Register index 6 refers to the byte addressed by HL.
"""

from __future__ import annotations

from collections.abc import Callable

from .errors import UnknownOpcodeError
from .registers import Flag

HL_INDIRECT = 6

# (value, carry_in) -> (result, carry_out, zero)
_ShiftOp = Callable[[int, bool], "tuple[int, bool, bool]"]


def _rlc(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    result = ((value << 1) | (value >> 7)) & 0xFF
    return result, bool(value & 0x80), result == 0


def _rrc(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    result = ((value >> 1) | (value << 7)) & 0xFF
    return result, bool(value & 0x01), result == 0


def _rl(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    result = ((value << 1) | int(carry_in)) & 0xFF
    return result, bool(value & 0x80), result == 0


def _rr(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    result = ((value >> 1) | (int(carry_in) << 7)) & 0xFF
    return result, bool(value & 0x01), result == 0


# The shifts and the nibble swap derive the zero flag from the operand
# before it is modified.
def _sla(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    return (value << 1) & 0xFF, bool(value & 0x80), value == 0


def _sra(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    return (value >> 1) | (value & 0x80), bool(value & 0x01), value == 0


def _swap(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    return ((value >> 4) | (value << 4)) & 0xFF, False, value == 0


def _srl(value: int, carry_in: bool) -> tuple[int, bool, bool]:
    return value >> 1, bool(value & 0x01), value == 0


_SHIFT_OPS: tuple[_ShiftOp, ...] = (_rlc, _rrc, _rl, _rr, _sla, _sra, _swap, _srl)


def _shift(cpu, index: int, op: _ShiftOp) -> int:
    value = cpu.read_r8(index) & 0xFF
    result, carry, zero = op(value, bool(cpu.f & Flag.C))
    cpu.write_r8(index, result)
    flags = cpu.f & 0x0F
    if carry:
        flags |= Flag.C
    if zero:
        flags |= Flag.Z
    cpu.f = int(flags)
    return 4 if index == HL_INDIRECT else 2


def execute_cb(cpu, opcode: int) -> int:
    """Execute one CB-prefixed opcode on ``cpu`` and return the cycles it took.

    The program counter is left untouched; advancing it is the caller's job.
    """
    if not 0 <= opcode <= 0xFF:
        raise UnknownOpcodeError(opcode, prefixed=True)
    index = opcode & 0x07
    bit = (opcode >> 3) & 0x07
    kind = opcode >> 6

    if kind == 0:
        return _shift(cpu, index, _SHIFT_OPS[bit])

    cycles = 3 if index == HL_INDIRECT else 2
    mask = 1 << bit
    if kind == 1:
        flags = (cpu.f & 0x1F) | Flag.H
        if not cpu.read_r8(index) & mask:
            flags |= Flag.Z
        cpu.f = int(flags)
    elif kind == 2:
        cpu.write_r8(index, cpu.read_r8(index) & ~mask & 0xFF)
    else:
        cpu.write_r8(index, cpu.read_r8(index) | mask)
    return cycles