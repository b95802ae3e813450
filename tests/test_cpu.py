import pytest

from dmgcore.cpu import CPU
from dmgcore.errors import InvalidInterruptError, UnknownOpcodeError
from dmgcore.registers import Flag

WRAM = 0xC000


def make_cpu(*program, extra=None):
    rom = bytearray(0x8000)
    rom[0x100 : 0x100 + len(program)] = bytes(program)
    for addr, data in (extra or {}).items():
        rom[addr : addr + len(data)] = bytes(data)
    return CPU(bytes(rom))


def test_power_up_registers():
    cpu = make_cpu()
    assert cpu.af.word == 0x01B0
    assert cpu.bc.word == 0x0013
    assert cpu.de.word == 0x00D8
    assert cpu.hl.word == 0x014D
    assert cpu.sp.word == 0xFFFE
    assert cpu.pc.word == 0x100
    assert cpu.read_mem(0xFF40) == 0x91


def test_nop_advances_pc():
    cpu = make_cpu(0x00)
    start = cpu.pc.word
    assert cpu.step() == 1
    assert cpu.pc.word == start + 1


def test_load_immediate_then_register_copy():
    cpu = make_cpu(0x06, 0x42, 0x48)  # LD B,0x42 ; LD C,B
    cpu.step()
    cpu.step()
    assert cpu.b == 0x42
    assert cpu.c == 0x42


def test_load_immediate_into_hl_indirect():
    cpu = make_cpu(0x36, 0x99)  # LD (HL),0x99
    cpu.hl.word = WRAM
    cpu.step()
    assert cpu.read_mem(WRAM) == 0x99


def test_r8_index_six_goes_through_memory():
    cpu = make_cpu()
    cpu.hl.word = WRAM + 5
    cpu.write_r8(6, 0x3C)
    assert cpu.read_mem(WRAM + 5) == 0x3C
    assert cpu.read_r8(6) == 0x3C


def test_push_pop_round_trip():
    cpu = make_cpu(0x01, 0x34, 0x12, 0xC5, 0xD1)  # LD BC,0x1234 ; PUSH BC ; POP DE
    sp = cpu.sp.word
    cpu.step()
    assert cpu.step() == 4
    assert cpu.step() == 3
    assert cpu.de.word == 0x1234
    assert cpu.sp.word == sp


def test_push_pop_af_round_trip():
    cpu = make_cpu(0xF5, 0xC1)  # PUSH AF ; POP BC
    cpu.step()
    cpu.step()
    assert cpu.bc.word == cpu.af.word


def test_load_a_from_hl_increment():
    cpu = make_cpu(0x2A)  # LD A,(HL+)
    cpu.hl.word = WRAM
    cpu.write_mem(WRAM, 0x77)
    cpu.step()
    assert cpu.a == 0x77
    assert cpu.hl.word == WRAM + 1


def test_store_a_to_hl_decrement():
    cpu = make_cpu(0x32)  # LD (HL-),A
    cpu.hl.word = WRAM + 1
    cpu.a = 0x5A
    cpu.step()
    assert cpu.read_mem(WRAM + 1) == 0x5A
    assert cpu.hl.word == WRAM


def test_add_then_sub_restores_accumulator():
    cpu = make_cpu(0x80, 0x90)  # ADD A,B ; SUB B
    cpu.a = 0x21
    cpu.b = 0x13
    cpu.step()
    cpu.step()
    assert cpu.a == 0x21
    assert cpu.f & Flag.N


def test_xor_a_clears_and_sets_zero():
    cpu = make_cpu(0xAF)
    cpu.a = 0x6B
    cpu.step()
    assert cpu.a == 0
    assert cpu.f & Flag.Z


def test_compare_flags():
    cpu = make_cpu(0xFE, 0x40, 0xFE, 0x50)  # CP 0x40 ; CP 0x50
    cpu.a = 0x40
    cpu.step()
    assert cpu.f & Flag.Z
    assert not cpu.f & Flag.C
    cpu.step()
    assert cpu.f & Flag.C
    assert not cpu.f & Flag.Z
    assert cpu.a == 0x40


def test_increment_wraps_to_zero():
    cpu = make_cpu(0x04, 0x05)  # INC B ; DEC B
    cpu.b = 0xFF
    cpu.step()
    assert cpu.b == 0
    assert cpu.f & Flag.Z
    cpu.step()
    assert cpu.b == 0xFF


def test_sixteen_bit_increment_decrement_round_trip():
    cpu = make_cpu(0x13, 0x1B)  # INC DE ; DEC DE
    de = cpu.de.word
    cpu.step()
    assert cpu.de.word == de + 1
    cpu.step()
    assert cpu.de.word == de


def test_store_sp_writes_both_bytes():
    cpu = make_cpu(0x08, 0x00, 0xC0)  # LD (0xC000),SP
    assert cpu.step() == 5
    assert cpu.read_mem(WRAM) | (cpu.read_mem(WRAM + 1) << 8) == cpu.sp.word


def test_high_page_store_and_load():
    cpu = make_cpu(0xE0, 0x80, 0x3E, 0x00, 0xF0, 0x80)  # LDH (0x80),A ; LD A,0 ; LDH A,(0x80)
    cpu.a = 0x2D
    cpu.step()
    cpu.step()
    assert cpu.a == 0
    cpu.step()
    assert cpu.a == 0x2D


def test_complement_twice_restores():
    cpu = make_cpu(0x2F, 0x2F)
    cpu.a = 0x3C
    cpu.step()
    assert cpu.f & Flag.N and cpu.f & Flag.H
    cpu.step()
    assert cpu.a == 0x3C


def test_set_and_complement_carry():
    cpu = make_cpu(0x37, 0x3F)  # SCF ; CCF
    assert cpu.step() == 1
    assert (cpu.f & Flag.C) == Flag.C
    assert (cpu.f & (Flag.N | Flag.H)) == 0
    assert cpu.step() == 1
    assert (cpu.f & Flag.C) == 0
    assert (cpu.f & (Flag.N | Flag.H)) == 0


def test_rotate_left_circular_eight_times_restores():
    cpu = make_cpu(*([0x07] * 8))
    cpu.a = 0x96
    for _ in range(8):
        cpu.step()
    assert cpu.a == 0x96


def test_prefixed_swap_round_trip():
    cpu = make_cpu(0xCB, 0x37, 0xCB, 0x37)  # SWAP A twice
    cpu.a = 0x1F
    start = cpu.pc.word
    cpu.step()
    assert cpu.pc.word == start + 2
    cpu.step()
    assert cpu.a == 0x1F


def test_prefixed_set_bit():
    cpu = make_cpu(0xCB, 0xC0)  # SET 0,B
    cpu.b = 0
    cpu.step()
    assert cpu.b & 1 == 1


def test_absolute_jump():
    cpu = make_cpu(0xC3, 0x50, 0x01)
    assert cpu.step() == 4
    assert cpu.pc.word == 0x0150


def test_conditional_jump():
    cpu = make_cpu(0xC2, 0x50, 0x01, 0xCA, 0x60, 0x01)  # JP NZ ; JP Z
    cpu.f = int(Flag.Z)
    assert cpu.step() == 3
    assert cpu.step() == 4
    assert cpu.pc.word == 0x0160


def test_relative_jump_to_itself():
    cpu = make_cpu(0x18, 0xFE)  # JR -2
    start = cpu.pc.word
    assert cpu.step() == 3
    assert cpu.pc.word == start


def test_call_and_return():
    cpu = make_cpu(0xCD, 0x00, 0x02, 0x06, 0x55, extra={0x200: [0xC9]})
    sp = cpu.sp.word
    assert cpu.step() == 6
    assert cpu.pc.word == 0x0200
    assert cpu.sp.word == sp - 2
    assert cpu.step() == 4
    assert cpu.sp.word == sp
    cpu.step()
    assert cpu.b == 0x55


def test_restart_jumps_to_vector():
    cpu = make_cpu(0xFF)  # RST 0x38
    sp = cpu.sp.word
    assert cpu.step() == 4
    assert cpu.pc.word == 0x38
    assert cpu.sp.word == sp - 2


def test_enable_interrupts_is_delayed_and_disable():
    cpu = make_cpu(0xFB, 0x00, 0xF3)
    cpu.step()
    assert cpu.ime is False
    cpu.step()
    assert cpu.ime is True
    cpu.step()
    assert cpu.ime is False


def test_interrupt_dispatch_and_return():
    cpu = make_cpu(extra={0x40: [0xD9]})
    cpu.ime = True
    cpu.write_mem(0xFFFF, 0x01)
    cpu.interrupt(0)
    assert cpu.read_mem(0xFF0F) & 1 == 1
    start = cpu.pc.word
    sp = cpu.sp.word
    cpu.check_interrupts()
    assert cpu.pc.word == 0x40
    assert cpu.ime is False
    assert cpu.read_mem(0xFF0F) & 1 == 0
    cpu.step()
    assert cpu.pc.word == start
    assert cpu.sp.word == sp
    assert cpu.ime is True


def test_interrupts_ignored_when_disabled():
    cpu = make_cpu()
    cpu.write_mem(0xFFFF, 0x01)
    cpu.interrupt(0)
    start = cpu.pc.word
    cpu.check_interrupts()
    assert cpu.pc.word == start
    assert cpu.read_mem(0xFF0F) & 1 == 1


def test_invalid_interrupt_signal():
    cpu = make_cpu()
    with pytest.raises(InvalidInterruptError):
        cpu.handle_interrupt(3)


def test_unknown_opcode():
    cpu = make_cpu(0xD3)
    with pytest.raises(UnknownOpcodeError) as info:
        cpu.step()
    assert info.value.opcode == 0xD3
    assert info.value.address == 0x100


def test_echo_ram_write_mirrors_work_ram():
    cpu = make_cpu()
    cpu.write_mem(0xE010, 0x44)
    assert cpu.read_mem(0xC010) == 0x44