"""The processor core: registers, instruction decoding and interrupts."""

from __future__ import annotations

from collections.abc import Callable
from functools import partial

from .cb import execute_cb
from .errors import InvalidInterruptError, UnknownOpcodeError
from .memory import MemoryBus
from .registers import Flag, RegisterPair

PC_START = 0x100
HL_INDIRECT = 6

INTERRUPT_FLAG_ADDR = 0xFF0F
INTERRUPT_ENABLE_ADDR = 0xFFFF
HIGH_PAGE = 0xFF00

_Z = int(Flag.Z)
_N = int(Flag.N)
_H = int(Flag.H)
_C = int(Flag.C)

_INTERRUPT_VECTORS = {0: 0x40, 1: 0x48, 2: 0x50, 4: 0x60}


def _signed(byte: int) -> int:
    return byte - 0x100 if byte & 0x80 else byte


def _byte_register(pair: str, part: str) -> property:
    def getter(self: CPU) -> int:
        return getattr(getattr(self, pair), part)

    def setter(self: CPU, value: int) -> None:
        setattr(getattr(self, pair), part, value)

    return property(getter, setter, doc=f"The {part} byte of {pair}.")


class CPU:
    """An 8-bit processor bound to a cartridge image."""

    a = _byte_register("af", "high")
    f = _byte_register("af", "low")
    b = _byte_register("bc", "high")
    c = _byte_register("bc", "low")
    d = _byte_register("de", "high")
    e = _byte_register("de", "low")
    h = _byte_register("hl", "high")
    l = _byte_register("hl", "low")  # noqa: E741

    def __init__(self, rom: bytes | bytearray) -> None:
        self.memory = MemoryBus(rom)
        self.af = RegisterPair(0x01B0)
        self.bc = RegisterPair(0x0013)
        self.de = RegisterPair(0x00D8)
        self.hl = RegisterPair(0x014D)
        self.sp = RegisterPair(0xFFFE)
        self.pc = RegisterPair(PC_START)
        self.ime = False
        self.ime_next = False

        self._r8 = (
            (self.bc, "high"),
            (self.bc, "low"),
            (self.de, "high"),
            (self.de, "low"),
            (self.hl, "high"),
            (self.hl, "low"),
            None,
            (self.af, "high"),
        )
        self._r16 = (self.bc, self.de, self.hl, self.sp)
        self._r16stk = (self.bc, self.de, self.hl, self.af)
        self._r16mem = (self.bc, self.de, self.hl, self.hl)
        self._ops = self._build_dispatch()

    # ------------------------------------------------------------------ memory

    def read_mem(self, addr: int) -> int:
        """Read a byte from the address space."""
        return self.memory.read(addr)

    def write_mem(self, addr: int, data: int) -> None:
        """Write a byte to the address space."""
        self.memory.write(addr, data)

    def read_r8(self, index: int) -> int:
        """Read an 8-bit operand by its encoding (B C D E H L (HL) A)."""
        if index == HL_INDIRECT:
            return self.read_mem(self.hl.word)
        pair, part = self._r8[index]
        return getattr(pair, part)

    def write_r8(self, index: int, value: int) -> None:
        """Write an 8-bit operand by its encoding (B C D E H L (HL) A)."""
        if index == HL_INDIRECT:
            self.write_mem(self.hl.word, value & 0xFF)
            return
        pair, part = self._r8[index]
        setattr(pair, part, value)

    # -------------------------------------------------------------- interrupts

    def interrupt(self, signal: int) -> None:
        """Request an interrupt by setting its bit in the request register."""
        self.write_mem(INTERRUPT_FLAG_ADDR, self.read_mem(INTERRUPT_FLAG_ADDR) | (1 << signal))

    def check_interrupts(self) -> None:
        """Service every requested and enabled interrupt if interrupts are on."""
        if not self.ime:
            return
        requested = self.read_mem(INTERRUPT_FLAG_ADDR)
        enabled = self.read_mem(INTERRUPT_ENABLE_ADDR)
        if requested == 0:
            return
        for signal in range(5):
            if requested & enabled & (1 << signal):
                self.handle_interrupt(signal)

    def handle_interrupt(self, signal: int) -> None:
        """Acknowledge ``signal`` and jump to its handler."""
        vector = _INTERRUPT_VECTORS.get(signal)
        if vector is None:
            raise InvalidInterruptError(signal)
        self.ime = False
        self.write_mem(INTERRUPT_FLAG_ADDR, self.read_mem(INTERRUPT_FLAG_ADDR) & ~(1 << signal) & 0xFF)
        self._push(self.pc.word)
        self.pc.word = vector

    # --------------------------------------------------------------- execution

    def step(self) -> int:
        """Execute the next instruction and return the cycles it took."""
        if self.ime_next:
            self.ime = True
            self.ime_next = False
        address = self.pc.word
        opcode = self.read_mem(address)
        handler = self._ops.get(opcode)
        if handler is None:
            raise UnknownOpcodeError(opcode, address=address)
        return handler()

    # ----------------------------------------------------------------- helpers

    def _imm8(self) -> int:
        return self.read_mem(self.pc.word + 1)

    def _imm16(self) -> int:
        return self.read_mem(self.pc.word + 1) | (self.read_mem(self.pc.word + 2) << 8)

    def _advance(self, length: int) -> None:
        self.pc.word += length

    def _push(self, word: int) -> None:
        self.sp.word -= 1
        self.write_mem(self.sp.word, (word >> 8) & 0xFF)
        self.sp.word -= 1
        self.write_mem(self.sp.word, word & 0xFF)

    def _pop(self) -> int:
        low = self.read_mem(self.sp.word)
        self.sp.word += 1
        high = self.read_mem(self.sp.word)
        self.sp.word += 1
        return low | (high << 8)

    def _condition(self, cc: int | None) -> bool:
        if cc is None:
            return True
        flags = self.f
        return (
            not flags & _Z,
            bool(flags & _Z),
            not flags & _C,
            bool(flags & _C),
        )[cc]

    def _set_result_flags(self, keep: int, result: int, *, subtract: bool = False) -> None:
        flags = self.f & keep
        if result == 0:
            flags |= _Z
        if subtract:
            flags |= _N
        if result & 0x08:
            flags |= _H
        if result & 0x80:
            flags |= _C
        self.f = flags

    # ------------------------------------------------------------------- loads

    def _nop(self) -> int:
        self._advance(1)
        return 1

    def _ld_r_r(self, dst: int, src: int) -> int:
        self.write_r8(dst, self.read_r8(src))
        self._advance(1)
        return 2 if HL_INDIRECT in (dst, src) else 1

    def _ld_r_imm(self, r: int) -> int:
        self.write_r8(r, self._imm8())
        self._advance(2)
        return 3 if r == HL_INDIRECT else 2

    def _r16mem_address(self, r: int) -> int:
        addr = self._r16mem[r].word
        if r == 2:
            self.hl.word += 1
        elif r == 3:
            self.hl.word -= 1
        return addr

    def _ld_a_indirect(self, r: int) -> int:
        self.a = self.read_mem(self._r16mem_address(r))
        self._advance(1)
        return 2

    def _ld_indirect_a(self, r: int) -> int:
        self.write_mem(self._r16mem_address(r), self.a)
        self._advance(1)
        return 2

    def _ld_a_direct(self) -> int:
        self.a = self.read_mem(self._imm16())
        self._advance(3)
        return 4

    def _ld_direct_a(self) -> int:
        self.write_mem(self._imm16(), self.a)
        self._advance(3)
        return 4

    def _ldh_a_c(self) -> int:
        self.a = self.read_mem(HIGH_PAGE + self.c)
        self._advance(1)
        return 2

    def _ldh_c_a(self) -> int:
        self.write_mem(HIGH_PAGE + self.c, self.a)
        self._advance(1)
        return 2

    def _ldh_a_imm(self) -> int:
        self.a = self.read_mem(HIGH_PAGE + self._imm8())
        self._advance(2)
        return 3

    def _ldh_imm_a(self) -> int:
        self.write_mem(HIGH_PAGE + self._imm8(), self.a)
        self._advance(2)
        return 3

    def _ld_rr_nn(self, r: int) -> int:
        self._r16[r].word = self._imm16()
        self._advance(3)
        return 3

    def _ld_nn_sp(self) -> int:
        addr = self._imm16()
        self.write_mem(addr, self.sp.low)
        self.write_mem(addr + 1, self.sp.high)
        self._advance(3)
        return 5

    def _ld_sp_hl(self) -> int:
        self.sp.word = self.hl.word
        self._advance(1)
        return 2

    def _push_rr(self, r: int) -> int:
        self._push(self._r16stk[r].word)
        self._advance(1)
        return 4

    def _pop_rr(self, r: int) -> int:
        self._r16stk[r].word = self._pop()
        self._advance(1)
        return 3

    def _ld_hl_sp_offset(self) -> int:
        self.hl.word = self.sp.word + _signed(self._imm8())
        flags = self.f & 0x0F
        if self.hl.word & 0x80:
            flags |= _C
        if self.hl.word & 0x08:
            flags |= _H
        self.f = flags
        self._advance(2)
        return 3

    # -------------------------------------------------------------- arithmetic

    def _carry_bit(self) -> int:
        return (self.f & _C) >> 4

    def _add(self, value: int, with_carry: bool) -> None:
        self.a = self.a + value + (self._carry_bit() if with_carry else 0)
        self._set_result_flags(0x0F, self.a)

    def _sub(self, value: int, with_carry: bool, *, subtract_flag: bool) -> None:
        self.a = self.a - (value + (self._carry_bit() if with_carry else 0))
        self._set_result_flags(0x0F, self.a, subtract=subtract_flag)

    def _compare(self, value: int) -> None:
        flags = self.f & 0x0F
        if self.a == value:
            flags |= _Z
        if (self.a - value) & 0x08:
            flags |= _H
        if self.a < value:
            flags |= _C
        self.f = flags

    def _add_r(self, with_carry: bool, r: int) -> int:
        self._add(self.read_r8(r), with_carry)
        self._advance(1)
        return 2 if r == HL_INDIRECT else 1

    def _add_imm(self, with_carry: bool) -> int:
        self._add(self._imm8(), with_carry)
        self._advance(2)
        return 2

    def _sub_r(self, with_carry: bool, r: int) -> int:
        self._sub(self.read_r8(r), with_carry, subtract_flag=True)
        self._advance(1)
        return 2 if r == HL_INDIRECT else 1

    def _sub_imm(self, with_carry: bool) -> int:
        self._sub(self._imm8(), with_carry, subtract_flag=False)
        self._advance(2)
        return 2

    def _cp_r(self, r: int) -> int:
        self._compare(self.read_r8(r))
        self._advance(1)
        return 2 if r == HL_INDIRECT else 1

    def _cp_imm(self) -> int:
        self._compare(self._imm8())
        self._advance(2)
        return 2

    def _step_r(self, delta: int, r: int) -> int:
        value = (self.read_r8(r) + delta) & 0xFF
        self.write_r8(r, value)
        flags = self.f & 0x1F
        if value == 0:
            flags |= _Z
        if value & 0x08:
            flags |= _H
        self.f = flags
        self._advance(1)
        return 3 if r == HL_INDIRECT else 1

    def _logic(self, op: Callable[[int, int], int], value: int, keep: int, half: bool) -> None:
        self.a = op(self.a, value)
        flags = self.f & keep
        if self.a == 0:
            flags |= _Z
        if half:
            flags |= _H
        self.f = flags

    def _logic_r(self, op: Callable[[int, int], int], half: bool, r: int) -> int:
        self._logic(op, self.read_r8(r), 0x1F, half)
        self._advance(1)
        return 2 if r == HL_INDIRECT else 1

    def _logic_imm(self, op: Callable[[int, int], int], half: bool) -> int:
        self._logic(op, self._imm8(), 0x0F, half)
        self._advance(2)
        return 2

    def _ccf(self) -> int:
        self.f = (self.f & 0x9F) ^ _C
        self._advance(1)
        return 1

    def _scf(self) -> int:
        self.f = (self.f & 0x9F) | _C
        self._advance(1)
        return 1

    def _daa(self) -> int:
        flags = self.f
        subtract = bool(flags & _N)
        offset = 0
        if (subtract and (self.a & 0x0F) > 9) or flags & _H:
            offset |= 0x06
        if (subtract and (self.a & 0xF0) > 0x90) or flags & _C:
            offset |= 0x60
        self.a = self.a - offset if subtract else self.a + offset
        flags &= 0x4F
        if self.a == 0:
            flags |= _Z
        if offset >= 0x60:
            flags |= _C
        self.f = flags
        self._advance(1)
        return 1

    def _cpl(self) -> int:
        self.a = ~self.a & 0xFF
        self.f = (self.f & 0x9F) | _N | _H
        self._advance(1)
        return 1

    def _inc_r16(self, r: int) -> int:
        self._r16[r].word += 1
        self._advance(1)
        return 2

    def _dec_r16(self, r: int) -> int:
        self._r16[r].word -= 1
        self._advance(1)
        return 2

    def _add_hl_r16(self, r: int) -> int:
        self.hl.word += self._r16[r].word
        self.f &= 0x8F
        self._advance(1)
        return 2

    def _add_sp_offset(self) -> int:
        self.sp.word += _signed(self._imm8())
        flags = self.f & 0x0F
        if self.sp.word & 0x80:
            flags |= _C
        if self.sp.word & 0x08:
            flags |= _H
        self.f = flags
        self._advance(2)
        return 4

    # ------------------------------------------------------ accumulator shifts

    def _rotate_a(self, left: bool, through_carry: bool) -> int:
        value = self.a
        carry_in = self._carry_bit()
        if left:
            carry_out = value & 0x80
            fill = carry_in if through_carry else value >> 7
            self.a = (value << 1) | fill
        else:
            carry_out = value & 0x01
            fill = carry_in if through_carry else value & 0x01
            self.a = (value >> 1) | (fill << 7)
        self.f = (self.f & 0x0F) | (_C if carry_out else 0)
        self._advance(1)
        return 1

    def _prefixed(self) -> int:
        cycles = execute_cb(self, self.read_mem(self.pc.word + 1))
        self._advance(2)
        return cycles

    # ------------------------------------------------------------ control flow

    def _jp(self, cc: int | None) -> int:
        target = self._imm16()
        if self._condition(cc):
            self.pc.word = target
            return 4
        self._advance(3)
        return 3

    def _jp_hl(self) -> int:
        self.pc.word = self.hl.word
        return 4

    def _jr(self, cc: int | None) -> int:
        offset = _signed(self._imm8())
        if self._condition(cc):
            self.pc.word += 2 + offset
            return 3
        self._advance(2)
        return 2

    def _call(self, cc: int | None) -> int:
        target = self._imm16()
        if self._condition(cc):
            self._push(self.pc.word + 3)
            self.pc.word = target
            return 6
        self._advance(3)
        return 3

    def _ret(self, cc: int | None) -> int:
        if cc is None:
            self.pc.word = self._pop()
            return 4
        if self._condition(cc):
            self.pc.word = self._pop()
            return 5
        self._advance(1)
        return 2

    def _reti(self) -> int:
        self.pc.word = self._pop()
        self.ime = True
        return 4

    def _rst(self, vector: int) -> int:
        self._push(self.pc.word + 1)
        self.pc.word = vector
        return 4

    def _di(self) -> int:
        self.ime = False
        self._advance(1)
        return 1

    def _ei(self) -> int:
        self.ime_next = True
        self._advance(1)
        return 1

    # ---------------------------------------------------------------- decoding

    def _build_dispatch(self) -> dict[int, Callable[[], int]]:
        ops: dict[int, Callable[[], int]] = {
            0x00: self._nop,
            0xFA: self._ld_a_direct,
            0xEA: self._ld_direct_a,
            0xF2: self._ldh_a_c,
            0xE2: self._ldh_c_a,
            0xF0: self._ldh_a_imm,
            0xE0: self._ldh_imm_a,
            0x08: self._ld_nn_sp,
            0xF9: self._ld_sp_hl,
            0xF8: self._ld_hl_sp_offset,
            0xC6: partial(self._add_imm, False),
            0xCE: partial(self._add_imm, True),
            0xD6: partial(self._sub_imm, False),
            0xDE: partial(self._sub_imm, True),
            0xFE: self._cp_imm,
            0xE6: partial(self._logic_imm, lambda x, y: x & y, True),
            0xF6: partial(self._logic_imm, lambda x, y: x | y, False),
            0xEE: partial(self._logic_imm, lambda x, y: x ^ y, False),
            0x3F: self._ccf,
            0x37: self._scf,
            0x27: self._daa,
            0x2F: self._cpl,
            0xE8: self._add_sp_offset,
            0x07: partial(self._rotate_a, True, False),
            0x0F: partial(self._rotate_a, False, False),
            0x17: partial(self._rotate_a, True, True),
            0x1F: partial(self._rotate_a, False, True),
            0xCB: self._prefixed,
            0xC3: partial(self._jp, None),
            0xE9: self._jp_hl,
            0x18: partial(self._jr, None),
            0xCD: partial(self._call, None),
            0xC9: partial(self._ret, None),
            0xD9: self._reti,
            0xF3: self._di,
            0xFB: self._ei,
        }
        for dst in range(8):
            for src in range(8):
                ops[0x40 | (dst << 3) | src] = partial(self._ld_r_r, dst, src)
        for r in range(8):
            ops[0x06 | (r << 3)] = partial(self._ld_r_imm, r)
            ops[0x04 | (r << 3)] = partial(self._step_r, 1, r)
            ops[0x05 | (r << 3)] = partial(self._step_r, -1, r)
            ops[0x80 | r] = partial(self._add_r, False, r)
            ops[0x88 | r] = partial(self._add_r, True, r)
            ops[0x90 | r] = partial(self._sub_r, False, r)
            ops[0x98 | r] = partial(self._sub_r, True, r)
            ops[0xA0 | r] = partial(self._logic_r, lambda x, y: x & y, True, r)
            ops[0xA8 | r] = partial(self._logic_r, lambda x, y: x ^ y, False, r)
            ops[0xB0 | r] = partial(self._logic_r, lambda x, y: x | y, False, r)
            ops[0xB8 | r] = partial(self._cp_r, r)
            ops[0xC7 | (r << 3)] = partial(self._rst, r * 8)
        for r in range(4):
            ops[0x01 | (r << 4)] = partial(self._ld_rr_nn, r)
            ops[0x02 | (r << 4)] = partial(self._ld_indirect_a, r)
            ops[0x0A | (r << 4)] = partial(self._ld_a_indirect, r)
            ops[0x03 | (r << 4)] = partial(self._inc_r16, r)
            ops[0x0B | (r << 4)] = partial(self._dec_r16, r)
            ops[0x09 | (r << 4)] = partial(self._add_hl_r16, r)
            ops[0xC5 | (r << 4)] = partial(self._push_rr, r)
            ops[0xC1 | (r << 4)] = partial(self._pop_rr, r)
        for cc in range(4):
            ops[0xC2 | (cc << 3)] = partial(self._jp, cc)
            ops[0x20 | (cc << 3)] = partial(self._jr, cc)
            ops[0xC4 | (cc << 3)] = partial(self._call, cc)
            ops[0xC0 | (cc << 3)] = partial(self._ret, cc)
        return ops